"""
Snapshot persistence.

Each developer gets a directory under the data directory holding a single
``contributions.json`` file that is overwritten by every collection run.
"""

import json
from pathlib import Path
from typing import List, Union

from contriblens.console import logger
from contriblens.errors import DataNotFoundError
from contriblens.models import DeveloperSnapshot

SNAPSHOT_FILENAME = "contributions.json"


class SnapshotStore:
    """Reads and writes developer snapshots below a data directory"""

    def __init__(self, data_directory: Union[str, Path]) -> None:
        self.data_directory = Path(data_directory)

    def developer_directory(self, username: str) -> Path:
        return self.data_directory / username

    def ensure_developer_directory(self, username: str) -> Path:
        directory = self.developer_directory(username)
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def snapshot_path(self, username: str) -> Path:
        return self.developer_directory(username) / SNAPSHOT_FILENAME

    def exists(self, username: str) -> bool:
        return self.snapshot_path(username).is_file()

    def save(self, snapshot: DeveloperSnapshot) -> Path:
        """Write the snapshot, replacing any previous one for the developer"""
        self.ensure_developer_directory(snapshot.developer)
        path = self.snapshot_path(snapshot.developer)
        tmp_path = path.with_suffix(".json.tmp")

        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(snapshot.to_dict(), f, indent=2, ensure_ascii=False)
            f.write("\n")
        tmp_path.replace(path)

        logger.info(f"Data saved to: {path}")
        return path

    def load(self, username: str) -> DeveloperSnapshot:
        """
        Load a developer's snapshot.

        Raises:
            DataNotFoundError: If no snapshot was collected for the developer
        """
        path = self.snapshot_path(username)
        if not path.is_file():
            raise DataNotFoundError(username)

        with open(path, 'r', encoding='utf-8') as f:
            return DeveloperSnapshot.from_dict(json.load(f))

    def available_users(self) -> List[str]:
        """Sorted names of developers that have a persisted snapshot"""
        if not self.data_directory.is_dir():
            return []
        return sorted(
            entry.name for entry in self.data_directory.iterdir()
            if entry.is_dir() and (entry / SNAPSHOT_FILENAME).is_file()
        )
