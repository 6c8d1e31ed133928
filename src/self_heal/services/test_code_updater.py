"""Page object updater for safely rewriting locator source files."""

import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple
import logging
from dataclasses import dataclass, field


logger = logging.getLogger(__name__)


class PatchConflictError(Exception):
    """Raised when a file no longer holds the content a patch was computed from."""
    pass


@dataclass(frozen=True)
class PatchOperation:
    """Replace the whole content of one file, guarded by its expected prior content."""
    target_path: str
    new_content: str
    expected_content: Optional[str] = None


@dataclass
class UpdateResult:
    """Result of a page object update operation."""
    success: bool
    backup_path: Optional[str] = None
    updated_locators: List[Tuple[str, str]] = field(default_factory=list)  # (old, new) pairs
    error_message: Optional[str] = None


def replace_locator_literal(content: str, old_locator: str, new_locator: str) -> Tuple[str, int]:
    """Replace every occurrence of a locator literal; returns (content, count)."""
    if not old_locator:
        return content, 0
    count = content.count(old_locator)
    if count == 0:
        return content, 0
    return content.replace(old_locator, new_locator), count


class PageObjectUpdater:
    """Applies patch operations to page object files."""

    def __init__(self, project_root: str = ".", backup_dir: Optional[str] = None):
        """Initialize the updater.

        Args:
            project_root: Directory that relative target paths are resolved against
            backup_dir: Directory to store backups. If None, no backups are taken.
        """
        self.project_root = Path(project_root)
        self.backup_dir = Path(backup_dir) if backup_dir else None

    def resolve(self, target_path: str) -> Path:
        path = Path(target_path)
        return path if path.is_absolute() else self.project_root / path

    def backup_file(self, file_path: Path) -> str:
        """Create a timestamped backup of the file.

        Raises:
            IOError: If backup creation fails
        """
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_path = self.backup_dir / f"{file_path.stem}_{timestamp}{file_path.suffix}"

        try:
            shutil.copy2(file_path, backup_path)
        except OSError as e:
            logger.error(f"Failed to create backup: {e}")
            raise IOError(f"Failed to create backup of {file_path}: {e}") from e

        logger.info(f"Created backup: {backup_path}")
        return str(backup_path)

    def apply(self, patch: PatchOperation) -> Optional[str]:
        """Overwrite the target file with the patch content in a single move.

        Returns:
            Backup path, if a backup was taken

        Raises:
            FileNotFoundError: If the target file does not exist
            PatchConflictError: If the file changed since the patch was computed
        """
        file_path = self.resolve(patch.target_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Page object not found: {file_path}")

        if patch.expected_content is not None:
            current = file_path.read_text(encoding="utf-8")
            if current != patch.expected_content:
                raise PatchConflictError(
                    f"{patch.target_path} changed since its content was captured; refusing to overwrite"
                )

        backup_path = self.backup_file(file_path) if self.backup_dir else None

        temp_file = f"{file_path}.tmp"
        try:
            with open(temp_file, 'w', encoding='utf-8', newline='') as f:
                f.write(patch.new_content)
            shutil.move(temp_file, file_path)
        except OSError:
            if os.path.exists(temp_file):
                os.remove(temp_file)
            raise

        logger.info(f"Wrote {len(patch.new_content)} characters to {patch.target_path}")
        return backup_path

    def update_locators(self, target_path: str,
                        replacements: List[Tuple[str, str]],
                        expected_content: Optional[str] = None) -> UpdateResult:
        """Substitute locator literals in one file and write it once.

        Args:
            target_path: Path to the page object
            replacements: (old, new) locator pairs, applied in order
            expected_content: Content the replacements were computed against;
                read from disk when None

        Returns:
            UpdateResult with operation details
        """
        result = UpdateResult(success=False)

        if expected_content is None:
            try:
                original = self.resolve(target_path).read_text(encoding="utf-8")
            except OSError as e:
                result.error_message = f"Could not read {target_path}: {e}"
                logger.error(result.error_message)
                return result
        else:
            original = expected_content

        updated = original
        for old_locator, new_locator in replacements:
            updated, count = replace_locator_literal(updated, old_locator, new_locator)
            if count:
                result.updated_locators.append((old_locator, new_locator))
                logger.info(f"Replaced {count} occurrence(s) of '{old_locator}' -> '{new_locator}'")
            else:
                logger.warning(f"Locator '{old_locator}' not found in {target_path}")

        if not result.updated_locators:
            result.error_message = "No locators were found to replace"
            return result

        try:
            result.backup_path = self.apply(PatchOperation(target_path, updated, expected_content=original))
        except (OSError, PatchConflictError) as e:
            result.error_message = f"Update failed: {e}"
            logger.error(f"Failed to update locators in {target_path}: {e}")
            return result

        result.success = True
        return result
