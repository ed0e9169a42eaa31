"""
Network monitoring state machine and its polling loop.
"""

import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Optional, Union

from netmon.core.stats_scraper import NodesStatsScraper
from netmon.monitoring.criteria import NetstatCalculator, NetworkErrorCriteria
from netmon.storage.models import MonitorState, NetworkScheme, NetworkStatusInfo, StatsSnapshot
from netmon.storage.stats_history import StatsHistory


class NetworkMonitor:
    """Keeps debounced "network operates stable" signal for one network.

    State, error streak and stats history are guarded by a single exclusive
    lock. Readers take it too: every critical section is short and never
    awaits, so a shared read lock would buy nothing on one event loop.
    The lock is never held while nodes stats are being fetched.
    """

    def __init__(self,
                 initial_state: Union[MonitorState, str],
                 network_scheme: Union[NetworkScheme, str],
                 max_stats_history_len: int,
                 scraper: NodesStatsScraper,
                 alert_on_network_error_streak: int,
                 criteria: NetworkErrorCriteria,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize network monitor.

        Args:
            initial_state: Monitor state right after start
            network_scheme: Scheme char of the monitored network
            max_stats_history_len: Amount of kept stats snapshots
            scraper: Source of nodes stats
            alert_on_network_error_streak: Network is considered degraded after that many
                consecutive checks with alerts
            criteria: Network error criteria
            logger: Logger to use, 'network_monitor' logger by default

        Raises:
            ValueError: If any of the arguments is invalid
        """
        if scraper is None:
            raise ValueError("scraper is required")
        if max_stats_history_len < 1:
            raise ValueError("max_stats_history_len should be greater than zero")
        if alert_on_network_error_streak < 1:
            raise ValueError("alert_on_network_error_streak should be greater than zero")
        criteria.validate()

        self.logger = logger or logging.getLogger('network_monitor')
        self.network_scheme = NetworkScheme.parse(network_scheme)
        self.scraper = scraper
        self.criteria = criteria
        self.alert_on_network_error_streak = alert_on_network_error_streak

        self._lock = threading.Lock()

        # state
        self._state = MonitorState.validate(initial_state)
        self._stats_history = StatsHistory(max_stats_history_len)
        self._network_error_streak = 0

    @property
    def error_streak(self) -> int:
        with self._lock:
            return self._network_error_streak

    async def check_nodes(self, now: datetime) -> Optional[StatsSnapshot]:
        """
        Fetch nodes stats, evaluate criteria and update error streak.

        Does nothing while the monitor is frozen. Stats fetched while the
        monitor was active are discarded if it has been frozen meanwhile.

        Args:
            now: Creation time of the new stats snapshot

        Returns:
            Fresh stats snapshot, or None if the check was skipped

        Raises:
            EmptyNodesError: If there are no nodes of the monitored network
            Exception: Any scraper failure, state is left untouched
        """
        state = self.state()
        if state is not MonitorState.ACTIVE:
            self.logger.debug(f"Monitor is frozen, current state is {str(state)!r}")
            return None

        all_networks_nodes = await self.scraper.scrape_node_stats()

        with self._lock:
            if self._state is not MonitorState.ACTIVE:
                self.logger.debug(f"Monitor has been frozen during the check, current state is {str(self._state)!r}")
                return None

            current_network_nodes = all_networks_nodes.with_network_scheme(self.network_scheme)
            calc = NetstatCalculator(self.criteria, current_network_nodes)

            snapshot = StatsSnapshot(
                created_at=now,
                nodes=current_network_nodes,
                max_height=calc.current_max_height(),
                nodes_down_alert=calc.alert_down_nodes(),
                height_alert=calc.alert_height(),
                state_hash_alert=calc.alert_state_hash()
            )
            outdated = self._stats_history.push_front(snapshot)

            self.logger.debug("Fresh stats has been pushed to stats history", extra={'stats': snapshot.to_dict()})
            if outdated is not None:
                self.logger.debug("Outdated stats has been dropped from stats history",
                                  extra={'stats': outdated.to_dict()})

            if snapshot.has_alerts:
                self._network_error_streak += 1
                self.logger.info(
                    f"Network {str(self.network_scheme)!r} error has been detected, "
                    f"error streak is {self._network_error_streak}",
                    extra={'stats': snapshot.to_dict()}
                )
            else:
                self._network_error_streak = 0
                self.logger.debug(f"Network {str(self.network_scheme)!r} operates normally")

            return snapshot

    def network_status_info(self) -> NetworkStatusInfo:
        """Current network status, height and update time come from the latest snapshot."""
        with self._lock:
            status = self._unsafe_network_operates_stable()
            if len(self._stats_history) == 0:
                return NetworkStatusInfo(network=self.network_scheme, status=status)

            front = self._stats_history.front()
            return NetworkStatusInfo(
                network=self.network_scheme,
                status=status,
                height=front.max_height,
                updated=front.created_at
            )

    def network_operates_stable(self) -> bool:
        with self._lock:
            return self._unsafe_network_operates_stable()

    def _unsafe_network_operates_stable(self) -> bool:
        if self._state is MonitorState.ACTIVE:
            return self._network_error_streak < self.alert_on_network_error_streak
        if self._state is MonitorState.FROZEN_DEGRADED:
            return False
        if self._state is MonitorState.FROZEN_OPERATES_STABLE:
            return True
        raise RuntimeError(f"Unknown monitor state {self._state!r}")

    def state(self) -> MonitorState:
        with self._lock:
            return self._state

    def change_state(self, state: MonitorState):
        """
        Change monitor state.

        Error streak is reset only if the state actually changes.
        """
        state = MonitorState.validate(state)
        with self._lock:
            if self._state is state:
                return

            self.logger.debug(f"Changing monitor state from {str(self._state)!r} to {str(state)!r}")
            self._state = state
            # streak makes sense only within a single state
            self._network_error_streak = 0


class MonitorRunner:
    """Runs network monitor checks periodically in a background task."""

    def __init__(self, monitor: NetworkMonitor, poll_interval: float,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize monitor runner.

        Args:
            monitor: Network monitor to drive
            poll_interval: Seconds between the end of a check and the start of the next one
            logger: Logger to use, 'monitor_runner' logger by default
        """
        if poll_interval <= 0:
            raise ValueError("poll_interval should be greater than zero")

        self.monitor = monitor
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger('monitor_runner')

        self._stop_event = asyncio.Event()
        self._done: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self):
        """Run checks until stop is requested."""
        self.logger.info(f"Starting network monitoring, poll interval is {self.poll_interval}s")

        while not self._stop_event.is_set():
            try:
                await self.monitor.check_nodes(datetime.now(timezone.utc))
            except Exception as e:
                self.logger.error(f"Failed to check nodes status: {e}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

        self.logger.info("Network monitoring has been stopped")

    def run_in_background(self) -> asyncio.Event:
        """
        Start checks loop in a background task.

        Returns:
            Event which is set once the loop has exited
        """
        if self.is_running:
            raise RuntimeError("Monitor runner is already running")

        self._done = asyncio.Event()
        self._task = asyncio.create_task(self._run_and_signal())
        return self._done

    async def _run_and_signal(self):
        try:
            await self.run()
        finally:
            # stop request is consumed by the finished run
            self._stop_event = asyncio.Event()
            self._done.set()

    def stop(self):
        """
        Request loop to stop, an in-flight check is not interrupted.

        A stop requested before the loop is started makes the next run exit
        without checking.
        """
        self._stop_event.set()

    async def wait_stopped(self):
        if self._done is not None:
            await self._done.wait()
