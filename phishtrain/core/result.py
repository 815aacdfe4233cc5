class Result:
    """Outcome of a call that may fail without raising.

    Result.ok(value) / Result.fail(error); truthy when successful.
    """

    __slots__ = ('success', 'value', 'error')

    def __init__(self, success, value=None, error=None):
        self.success = success
        self.value = value
        self.error = error

    @classmethod
    def ok(cls, value=None):
        return cls(True, value=value)

    @classmethod
    def fail(cls, error):
        return cls(False, error=error)

    def __bool__(self):
        return self.success

    def __repr__(self):
        if self.success:
            return f"Result.ok({self.value!r})"
        return f"Result.fail({self.error!r})"
