"""Low-stock notification state machine.

The watermark (``last_warned``) remembers the most severe threshold already
notified on. It only moves down while stock falls and resets once the free
count is back at or above the highest threshold, so each crossing fires once.
"""

from ..domain.entities import NotificationConfig, NotificationState
from ..infrastructure.notifications.telegram import Dispatcher
from ..logging_config import get_logger

logger = get_logger(__name__)


class LowStockNotifier:
    def __init__(
        self,
        state: NotificationState,
        config: NotificationConfig,
        dispatcher: Dispatcher,
    ):
        self.state = state
        self.config = config
        self.dispatcher = dispatcher

    def evaluate(self, free: int) -> bool:
        """Re-check the free count against the thresholds.

        At most one notification is dispatched per call: the most severe
        threshold newly crossed.

        Returns:
            True if the watermark changed and needs persisting
        """
        thresholds = self.config.thresholds
        last_warned = self.state.last_warned

        if not thresholds or free >= thresholds[0]:
            if last_warned is None:
                return False
            self.state.last_warned = None
            logger.info("Key stock recovered, warning cleared", free=free)
            return True

        crossed = [
            t
            for t in thresholds
            if free < t and (last_warned is None or t < last_warned)
        ]
        if not crossed:
            return False
        self._crossed(free, min(crossed))
        return True

    def _crossed(self, free: int, threshold: int) -> None:
        self.state.last_warned = threshold
        message = self.config.render(free)
        logger.warning("Key stock below threshold", free=free, threshold=threshold)
        self.dispatcher.dispatch(message)
