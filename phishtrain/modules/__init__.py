"""
PhishTrain Modules
==================

Flask blueprint modules that make up the campaign engine.
"""

__all__ = ['allowlist', 'campaigns', 'email', 'ops', 'tracking']
