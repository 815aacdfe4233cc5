"""
Campaign Scheduler
==================

Background loop that moves campaigns through their time-based transitions.
Each tick first starts (and dispatches) due campaigns, then debriefs and
completes campaigns past their end_time. A failure on one campaign is logged
and the tick carries on with the next.
"""

import logging
import threading

from phishtrain.core import db_log
from phishtrain.core.database import now_timestamp

logger = logging.getLogger(__name__)


class CampaignScheduler:

    def __init__(self, state_machine, campaigns, interval=60, app=None, clock=now_timestamp):
        self.state = state_machine
        self.campaigns = campaigns
        self.interval = interval
        self.app = app
        self.clock = clock
        self.last_tick = None
        self._in_flight = set()
        self._in_flight_lock = threading.Lock()
        self._start_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = None

    def _claim(self, campaign_id):
        with self._in_flight_lock:
            if campaign_id in self._in_flight:
                return False
            self._in_flight.add(campaign_id)
            return True

    def _release(self, campaign_id):
        with self._in_flight_lock:
            self._in_flight.discard(campaign_id)

    def _run_one(self, stage, campaign_id, action):
        if not self._claim(campaign_id):
            logger.info(f"Scheduler: campaign {campaign_id} already in progress, skipping {stage}")
            return None
        try:
            return action(campaign_id)
        except Exception as e:
            logger.exception(f"Scheduler: {stage} failed for campaign {campaign_id}")
            db_log('error', 'scheduler', f'{stage} failed for campaign {campaign_id}',
                   {'campaign_id': campaign_id, 'error': str(e), 'error_type': type(e).__name__})
            return None
        finally:
            self._release(campaign_id)

    def tick(self):
        """Run one scheduling pass. Returns IDs started and completed."""
        now = self.clock()
        started, completed = [], []

        try:
            due = self.campaigns.due_for_running(now)
        except Exception as e:
            logger.exception("Scheduler: could not load due campaigns")
            db_log('error', 'scheduler', 'Scheduling error', {'error': str(e)})
            due = []
        for campaign in due:
            if self._run_one('dispatch', campaign['id'], self.state.promote_to_running) is not None:
                started.append(campaign['id'])

        try:
            ending = self.campaigns.due_for_completion(now)
        except Exception as e:
            logger.exception("Scheduler: could not load ending campaigns")
            db_log('error', 'scheduler', 'Debrief error', {'error': str(e)})
            ending = []
        for campaign in ending:
            if self._run_one('debrief', campaign['id'], self.state.promote_to_completed):
                completed.append(campaign['id'])

        self.last_tick = now
        if started or completed:
            logger.info(f"Scheduler tick: started={started} completed={completed}")
        return {'started': started, 'completed': completed}

    def _loop(self):
        while not self._stop.wait(self.interval):
            if self.app is not None:
                with self.app.app_context():
                    self.tick()
            else:
                self.tick()

    def start(self):
        """Start the background thread once; later calls are no-ops"""
        with self._start_lock:
            if self._thread is not None and self._thread.is_alive():
                return False
            self._stop.clear()
            self._thread = threading.Thread(target=self._loop, name='phishtrain-scheduler', daemon=True)
            self._thread.start()
        logger.info(f"Campaign scheduler started (every {self.interval}s)")
        return True

    def stop(self, timeout=5):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None

    def status(self):
        return {
            'running': bool(self._thread and self._thread.is_alive()),
            'interval': self.interval,
            'last_tick': self.last_tick,
        }
