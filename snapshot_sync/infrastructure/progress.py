"""TQDM implementation of the SyncReporter port."""

import logging
from typing import Dict

from tqdm import tqdm

from ..application.domain import SyncReporter, SyncTask


class TqdmSyncReporter(SyncReporter):
    """Shows one progress bar per tracked sync and prints job messages."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.bars: Dict[str, tqdm] = {}
        self.printed: Dict[str, int] = {}

    def _print_new_messages(self, task: SyncTask):
        key = task.target_environment
        messages = task.handle.messages
        for message in messages[self.printed.get(key, 0):]:
            tqdm.write(f"[{key}] {message}")
        self.printed[key] = len(messages)

    def started(self, task: SyncTask):
        self.bars[task.target_environment] = tqdm(
            total=100,
            desc=f"Syncing snapshot '{task.descriptor.name}'",
            unit="%",
            bar_format="{desc}: {percentage:3.0f}%|{bar}|{postfix}",
        )
        self.printed[task.target_environment] = 0

    def updated(self, task: SyncTask):
        bar = self.bars.get(task.target_environment)
        if bar is None:
            return
        bar.n = round(task.handle.progress * 100)
        bar.set_postfix_str(task.handle.state, refresh=False)
        bar.refresh()
        self._print_new_messages(task)

    def finished(self, task: SyncTask):
        self.updated(task)
        bar = self.bars.pop(task.target_environment, None)
        if bar is not None:
            bar.close()
        self.printed.pop(task.target_environment, None)

        handle = task.handle
        if task.cancelled:
            self.logger.warning(f"Sync of '{task.descriptor.name}' cancelled")
        elif handle.is_error:
            self.logger.error(
                f"Sync of '{task.descriptor.name}' failed: "
                f"{handle.error_message}"
            )
        elif handle.complete:
            self.logger.info(f"Sync of '{task.descriptor.name}' complete")
