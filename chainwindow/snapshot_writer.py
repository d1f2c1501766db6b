# -----------------------------------------------------------------------------
# Project: ChainWindow v0.1
# File:    snapshot_writer.py
# (c)      2025-2026 Wolfgang Lohmann
# License: MIT
# -----------------------------------------------------------------------------

import json
import os
import portalocker
from portalocker import LOCK_EX

from chainwindow.models import WindowSnapshot

class SnapshotWriter:
    """
    Writes the current window snapshot to a JSON file for external inspection.
    Export only: the window is never restored from this file.
    """

    def __init__(self, file_path: str):
        """
        :param file_path: The path to the JSON file the snapshot is written to.
        """
        self.file_path = file_path
        self.writes = 0

    def save(self, snapshot: WindowSnapshot):
        """
        Saves the snapshot to the file under an exclusive lock.
        The snapshot is serialized first, so a failure leaves the previous file intact.
        """
        payload = json.dumps(snapshot.to_dict(), indent=4)

        directory = os.path.dirname(self.file_path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory, exist_ok=True)

        # 'a' does not truncate on open; truncation happens under the lock
        with open(self.file_path, 'a', encoding='utf-8') as f:
            portalocker.lock(f, LOCK_EX)
            f.seek(0)
            f.truncate()
            f.write(payload)
        self.writes += 1

# Example use
# writer = SnapshotWriter(Config.SNAPSHOT_FILE)
# store.subscribe(writer.save)
