# src/wsg_check/core/managers/progress_manager.py
import logging
import sys

from tqdm import tqdm

logger = logging.getLogger(__name__)


class ProgressManager:
    """
    Owns a tqdm progress bar that follows rule completion.
    """

    def __init__(self, total: int, desc: str, unit: str = "rule"):
        self.pbar = tqdm(
            total=max(total, 1),
            desc=desc,
            unit=f" {unit}",
            dynamic_ncols=True,
            leave=False,
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}]",
            file=sys.stderr
        )

    def set_total(self, new_total: int):
        if self.pbar:
            self.pbar.total = max(new_total, self.pbar.n, 1)
            self.pbar.refresh()

    def update_to(self, done: int, total: int):
        """Progress callback signature used by the rule engine: (done, total)."""
        if not self.pbar:
            return
        if total != self.pbar.total:
            self.set_total(total)
        self.pbar.update(done - self.pbar.n)

    def close(self):
        if not self.pbar:
            return
        self.pbar.close()
        self.pbar = None
        logger.debug("ProgressManager: Progress bar closed.")
