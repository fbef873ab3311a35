import logging
import os
import secrets
import shutil
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from time import time
from typing import Any, Generator


logger = logging.getLogger(__name__)


SOURCE_NAME = 'main.c'
BINARY_NAME = 'main'


@dataclass(frozen=True)
class Workspace:
    directory: str
    source_path: str
    binary_path: str


class WorkspaceManager:
    """Private scratch directories for submissions under one root.

    Directory names come from a random token so concurrent submissions can
    never collide, whatever their ids. A janitor thread removes anything
    older than ``retention`` seconds left behind by a crashed pipeline.
    """

    def __init__(self, root: str, *, retention: float = 3600, sweep_interval: float = 1800):
        self.root = os.path.abspath(root)
        self.retention = retention
        self.sweep_interval = sweep_interval
        self._stop_event = threading.Event()
        self._sweep_thread: threading.Thread | None = None

    def ensure_root(self):
        os.makedirs(self.root, exist_ok=True)

    def acquire(self, sub_id: str) -> Workspace:
        self.ensure_root()
        directory = os.path.join(self.root, f'ws_{secrets.token_hex(8)}')
        os.mkdir(directory, 0o700)
        logger.debug(f'Workspace {directory} acquired for submission {sub_id}')
        return Workspace(
            directory=directory,
            source_path=os.path.join(directory, SOURCE_NAME),
            binary_path=os.path.join(directory, BINARY_NAME),
        )

    def release(self, workspace: Workspace):
        """Delete the workspace. Files that are already gone are fine."""
        for path in (workspace.source_path, workspace.binary_path):
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
            except OSError:
                logger.exception(f'Failed to delete {path}, leaving it to the janitor')
        try:
            # the program may have created files of its own in its cwd
            shutil.rmtree(workspace.directory)
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception(f'Failed to delete {workspace.directory}, leaving it to the janitor')

    @contextmanager
    def workspace(self, sub_id: str) -> Generator[Workspace, Any, None]:
        workspace = self.acquire(sub_id)
        try:
            yield workspace
        finally:
            self.release(workspace)

    def sweep(self) -> int:
        """Remove entries under the root older than the retention time.

        Returns the number of removed entries.
        """
        if not os.path.isdir(self.root):
            return 0
        deadline = time() - self.retention
        removed = 0
        with os.scandir(self.root) as entries:
            for entry in entries:
                try:
                    if entry.stat(follow_symlinks=False).st_mtime >= deadline:
                        continue
                    if entry.is_dir(follow_symlinks=False):
                        shutil.rmtree(entry.path)
                    else:
                        os.unlink(entry.path)
                    removed += 1
                except FileNotFoundError:
                    # released by its pipeline in the meantime
                    continue
                except OSError:
                    logger.exception(f'Failed to remove stale entry {entry.path}')
        if removed:
            logger.info(f'Removed {removed} stale entries from {self.root}')
        return removed

    def count_entries(self) -> int:
        if not os.path.isdir(self.root):
            return 0
        return len(os.listdir(self.root))

    def run(self):
        while not self._stop_event.wait(self.sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception(f'Sweep of {self.root} failed. Will retry in {self.sweep_interval} seconds...')

    def start(self):
        self.ensure_root()
        logger.info(f'Scratch directory ready at {self.root}, sweeping every {self.sweep_interval}s')
        self._stop_event.clear()
        self._sweep_thread = threading.Thread(target=self.run, name='workspace-janitor')
        self._sweep_thread.daemon = True
        self._sweep_thread.start()

    def stop(self):
        self._stop_event.set()
        if self._sweep_thread is not None:
            self._sweep_thread.join()
            self._sweep_thread = None
        logger.info(f'Final sweep of {self.root}')
        self.sweep()
