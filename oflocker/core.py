"""The locker: a publish loop and a reconcile loop running side by side"""

import logging
import os
import signal
import threading
from typing import Callable, List, Optional

from .enumerator import create_enumerator
from .lock import LockTable
from .publisher import SnapshotPublisher
from .reconciler import Reconciler
from .transport import SnapshotTransport

logger = logging.getLogger(__name__)


class OpenFilesLocker:
    """Main locker class.

    One thread regularly publishes the files open on this node into the
    shared folder; another regularly reads every peer's snapshot and locks
    the local copies of the files they have open. The two loops share only
    settings and a stop event.
    """

    def __init__(self,
                 local_share: str,
                 remote_locations: List[str],
                 working_folder: str,
                 snapshot_filename: str = 'openfiles.dat',
                 exceptions: Optional[List[str]] = None,
                 generation_interval: float = 5.0,
                 check_interval: float = 5.0,
                 enumerator=None,
                 transport=None):
        self.local_share = os.path.abspath(local_share)
        self.generation_interval = generation_interval
        self.check_interval = check_interval

        self.publisher = SnapshotPublisher(
            enumerator or create_enumerator(),
            self.local_share,
            snapshot_filename,
            exceptions,
        )
        self.lock_table = LockTable()
        self.reconciler = Reconciler(
            transport or SnapshotTransport(),
            remote_locations,
            self.local_share,
            snapshot_filename,
            working_folder,
            self.lock_table,
        )

        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []

    @classmethod
    def from_settings(cls, settings: dict, enumerator=None, transport=None) -> 'OpenFilesLocker':
        if enumerator is None:
            enumerator = create_enumerator(
                settings.get('enumerator'),
                settings.get('enumerator_command'),
                settings.get('enumerate_timeout'),
            )
        if transport is None:
            transport = SnapshotTransport(s3_options={
                'endpoint_url': settings.get('endpoint_url'),
                'access_key': settings.get('access_key'),
                'secret_key': settings.get('secret_key'),
                'region': settings.get('region'),
            })
        return cls(
            local_share=settings['local_share'],
            remote_locations=settings.get('remote_locations', []),
            working_folder=settings['working_folder'],
            snapshot_filename=settings.get('snapshot_filename', 'openfiles.dat'),
            exceptions=settings.get('exceptions'),
            generation_interval=settings.get('generation_interval', 5.0),
            check_interval=settings.get('check_interval', 5.0),
            enumerator=enumerator,
            transport=transport,
        )

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self):
        """Start the publish and reconcile threads"""
        if self.running:
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(target=self._loop, name='oflocker-publish',
                             args=('publish', self.publisher.publish, self.generation_interval),
                             daemon=True),
            threading.Thread(target=self._loop, name='oflocker-reconcile',
                             args=('reconcile', self.reconciler.reconcile_once, self.check_interval),
                             daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Signal both loops, wait for them, then drop every held lock.

        Locks are only dropped once both threads have exited; returns False
        when a thread outlived timeout and the lock table was left alone.
        """
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        alive = [t for t in self._threads if t.is_alive()]
        if alive:
            logger.warning(f"threads still running after {timeout}s: {', '.join(t.name for t in alive)}")
            return False
        self._threads = []
        self.lock_table.release_all()
        return True

    def run_forever(self, poll: float = 1.0):
        """Run both loops until interrupted by Ctrl+C or SIGTERM"""
        def handle_signal(signum, frame):
            logger.info(f"signal {signum} received, stopping")
            self.request_stop()

        previous = signal.signal(signal.SIGTERM, handle_signal)
        self.start()
        try:
            while not self.wait(poll):
                pass
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()
            if previous is not None:
                signal.signal(signal.SIGTERM, previous)

    def request_stop(self):
        self._stop.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._stop.wait(timeout)

    def _loop(self, name: str, cycle: Callable, interval: float):
        logger.info(f"{name} loop started")
        while not self._stop.is_set():
            try:
                cycle()
            except Exception:
                logger.exception(f"{name} cycle failed")
            self._stop.wait(interval)
        logger.info(f"{name} loop stopped")
