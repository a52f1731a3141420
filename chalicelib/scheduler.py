import threading
from typing import Callable, Optional

from chalicelib.constants.constants import LOCAL_PROMOTION_SWEEP_INTERVAL_SECONDS
from chalicelib.utils.logger import logger, log_exception


class PromotionSweepRunner:
    """
    In-process runner of the promotion sweep for local runs,
    deployed stages use the scheduled lambda instead
    """

    def __init__(self, sweep: Callable[[], int], interval_seconds: float = LOCAL_PROMOTION_SWEEP_INTERVAL_SECONDS):
        self.sweep = sweep
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            logger.warning('PromotionSweepRunner ::: already running')
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name='promotion-sweep', daemon=True)
        self._thread.start()
        logger.info(f'PromotionSweepRunner ::: started, interval={self.interval_seconds}s')

    def stop(self, timeout: float = None):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info('PromotionSweepRunner ::: stopped')

    def run_once(self) -> int:
        try:
            return self.sweep()
        except Exception as error:
            log_exception(error, status_code=500, msg='PromotionSweepRunner ::: sweep failed')
            return 0

    def _run_loop(self):
        # the first sweep happens one interval after start
        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()
