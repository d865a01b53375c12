"""File storage handler for configuration directory operations."""

import shutil
import logging
from typing import List, Optional
from pathlib import Path


class FileStorage:
    """File storage handler for managing config files and directories."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def ensure_directory_exists(self, directory_path: str) -> bool:
        """Ensure directory exists, create if it doesn't.

        Returns True when the directory had to be created.
        """
        try:
            path = Path(directory_path)
            if path.is_dir():
                return False

            path.mkdir(parents=True, exist_ok=True)
            self.logger.debug(f"Directory created: {directory_path}")
            return True

        except Exception as e:
            self.logger.error(f"Failed to create directory {directory_path}: {str(e)}")
            raise

    def write_file(self, file_path: str, content: str, encoding: str = 'utf-8') -> bool:
        """Write content to a file."""
        try:
            path = Path(file_path)

            # Ensure parent directory exists
            self.ensure_directory_exists(str(path.parent))

            with open(path, 'w', encoding=encoding) as f:
                f.write(content)

            self.logger.debug(f"File written: {file_path}")
            return True

        except Exception as e:
            self.logger.error(f"Failed to write file {file_path}: {str(e)}")
            raise

    def read_file(self, file_path: str, encoding: str = 'utf-8') -> str:
        """Read content from a file."""
        try:
            path = Path(file_path)

            if not path.exists():
                raise FileNotFoundError(f"File not found: {file_path}")

            with open(path, 'r', encoding=encoding) as f:
                content = f.read()

            self.logger.debug(f"File read: {file_path}")
            return content

        except Exception as e:
            self.logger.error(f"Failed to read file {file_path}: {str(e)}")
            raise

    def file_exists(self, file_path: str) -> bool:
        """Check if a regular file exists."""
        return Path(file_path).is_file()

    def directory_exists(self, directory_path: str) -> bool:
        """Check if directory exists."""
        return Path(directory_path).is_dir()

    def delete_path(self, path_str: str) -> bool:
        """Delete a file, symlink or directory tree. Missing paths are a no-op."""
        try:
            path = Path(path_str)

            if path.is_symlink() or path.is_file():
                path.unlink()
            elif path.is_dir():
                shutil.rmtree(path)
            else:
                self.logger.debug(f"Nothing to delete at {path_str}")
                return False

            self.logger.debug(f"Deleted: {path_str}")
            return True

        except Exception as e:
            self.logger.error(f"Failed to delete {path_str}: {str(e)}")
            raise

    def copy_file(self, source_path: str, destination_path: str) -> bool:
        """Copy a file, replacing the destination if it exists."""
        try:
            src = Path(source_path)
            dst = Path(destination_path)

            if not src.is_file():
                raise FileNotFoundError(f"Source file not found: {source_path}")

            if not dst.parent.is_dir():
                raise FileNotFoundError(f"Destination directory not found: {dst.parent}")

            shutil.copy2(src, dst)

            self.logger.debug(f"File copied: {source_path} -> {destination_path}")
            return True

        except Exception as e:
            self.logger.error(f"Failed to copy file {source_path} to {destination_path}: {str(e)}")
            raise

    def copy_tree(self, source_path: str, destination_path: str) -> str:
        """Copy a directory tree preserving metadata and symlinks.

        The destination must not exist yet.
        """
        try:
            src = Path(source_path)
            dst = Path(destination_path)

            if not src.is_dir():
                raise NotADirectoryError(f"Source directory not found: {source_path}")

            if dst.exists():
                raise FileExistsError(f"Destination already exists: {destination_path}")

            shutil.copytree(src, dst, symlinks=True)

            self.logger.debug(f"Directory copied: {source_path} -> {destination_path}")
            return str(dst)

        except Exception as e:
            self.logger.error(f"Failed to copy directory {source_path} to {destination_path}: {str(e)}")
            raise

    def merge_tree(self, source_path: str, destination_path: str) -> List[str]:
        """Copy every file under source into destination without deleting anything.

        Returns the relative paths written, sorted.
        """
        try:
            src = Path(source_path)
            dst = Path(destination_path)

            if not src.is_dir():
                raise NotADirectoryError(f"Source directory not found: {source_path}")

            written = []
            for item in sorted(src.rglob('*')):
                relative = item.relative_to(src)
                target = dst / relative

                if item.is_dir() and not item.is_symlink():
                    target.mkdir(parents=True, exist_ok=True)
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                if target.is_dir() and not target.is_symlink():
                    raise IsADirectoryError(
                        f"Cannot replace directory {target} with file {item}"
                    )
                if item.is_symlink() or target.is_symlink():
                    if target.is_symlink() or target.exists():
                        target.unlink()
                shutil.copy2(item, target, follow_symlinks=False)
                written.append(str(relative))

            self.logger.debug(f"Merged {len(written)} files: {source_path} -> {destination_path}")
            return written

        except Exception as e:
            self.logger.error(f"Failed to merge {source_path} into {destination_path}: {str(e)}")
            raise

    def replace_directory(self, source_path: str, destination_path: str) -> str:
        """Make destination an exact copy of source.

        The copy is staged next to the destination first so a failed copy
        leaves the destination as it was.
        """
        try:
            src = Path(source_path)
            dst = Path(destination_path)

            if not src.is_dir():
                raise NotADirectoryError(f"Source directory not found: {source_path}")

            staging = dst.parent / f".{dst.name}.restore"
            if staging.exists():
                shutil.rmtree(staging)

            shutil.copytree(src, staging, symlinks=True)
            if dst.exists():
                shutil.rmtree(dst)
            staging.rename(dst)

            self.logger.debug(f"Directory replaced: {destination_path} <- {source_path}")
            return str(dst)

        except Exception as e:
            self.logger.error(f"Failed to replace {destination_path} with {source_path}: {str(e)}")
            raise

    def list_directories(self, directory_path: str, pattern: Optional[str] = None) -> List[str]:
        """List directories in a directory, optionally filtered by glob pattern."""
        try:
            path = Path(directory_path)

            if not path.exists():
                raise FileNotFoundError(f"Directory not found: {directory_path}")

            if not path.is_dir():
                raise NotADirectoryError(f"Path is not a directory: {directory_path}")

            candidates = path.glob(pattern) if pattern else path.iterdir()
            directories = [str(p) for p in candidates if p.is_dir()]

            self.logger.debug(f"Found {len(directories)} directories in {directory_path}")
            return sorted(directories)

        except Exception as e:
            self.logger.error(f"Failed to list directories in {directory_path}: {str(e)}")
            raise

    def any_file_contains(self, pattern: str, needle: str) -> bool:
        """Check whether any file matching an absolute glob contains `needle`."""
        glob_path = Path(pattern)
        for candidate in sorted(glob_path.parent.glob(glob_path.name)):
            if not candidate.is_file():
                continue
            try:
                if needle in candidate.read_text(encoding='utf-8', errors='replace'):
                    return True
            except OSError as e:
                self.logger.warning(f"Could not read {candidate}: {str(e)}")
        return False
