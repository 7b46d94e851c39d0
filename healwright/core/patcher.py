from __future__ import annotations

import logging
import os
import re
import traceback
from pathlib import Path

logger = logging.getLogger(__name__)

STACK_LOCATION = re.compile(r":(\d+):\d+")
TRACEBACK_LOCATION = re.compile(r'File "(?P<path>[^"]+)", line (?P<line>\d+)')


class FilePatcher:
    """Rewrites the failing source line of a test file with healed code.

    This mutates the consumer's test sources in place. Only the single line the
    error points at is replaced; statements spanning several lines are not
    relocated.
    """

    def patch(self, file_path: str | Path, error: BaseException, healed_code: str) -> bool:
        path = Path(file_path)
        if not path.is_file():
            logger.error("File not found for patching: %s", path)
            return False

        line_number = self.failing_line(path, error)
        if line_number is None:
            logger.error("Could not find %s in the stack trace", path)
            return False

        try:
            with path.open("r", encoding="utf-8", newline="") as handle:
                content = handle.read()
        except OSError as exc:
            logger.error("Failed to read %s for patching: %s", path, exc)
            return False

        lines = content.splitlines(keepends=True)
        index = line_number - 1
        if index < 0 or index >= len(lines):
            logger.error("Line number out of bounds for %s: %d", path, line_number)
            return False

        original = lines[index]
        body = original.rstrip("\r\n")
        ending = original[len(body):]
        indentation = body[: len(body) - len(body.lstrip())]
        replacement = "\n".join(indentation + code_line.strip() for code_line in healed_code.strip().splitlines())
        lines[index] = replacement + ending

        logger.info("Patching %s at line %d", path, line_number)
        logger.info("   Original: %s", body.strip())
        logger.info("   New:      %s", replacement.strip())
        try:
            path.write_text("".join(lines), encoding="utf-8", newline="")
        except OSError as exc:
            logger.error("Failed to patch %s: %s", path, exc)
            return False
        return True

    def failing_line(self, path: Path, error: BaseException) -> int | None:
        """1-based line of the first stack frame that references ``path``."""

        frames = traceback.extract_tb(error.__traceback__) if error.__traceback__ else []
        for frame in frames:
            if _same_file(frame.filename, path) and frame.lineno:
                return frame.lineno

        # The test frame awaiting an intercepted call sits above the point where
        # the error was caught, so it only shows up on the live call stack.
        for frame in reversed(traceback.extract_stack()):
            if _same_file(frame.filename, path) and frame.lineno:
                return frame.lineno

        stack = getattr(error, "stack", None)
        if isinstance(stack, str):
            for line in stack.splitlines():
                if str(path) in line or str(path.resolve()) in line:
                    match = STACK_LOCATION.search(line)
                    if match:
                        return int(match.group(1))

        formatted = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        for match in TRACEBACK_LOCATION.finditer(formatted):
            if _same_file(match.group("path"), path):
                return int(match.group("line"))
        return None


def _same_file(candidate: str, path: Path) -> bool:
    try:
        return os.path.samefile(candidate, path)
    except OSError:
        return str(candidate) == str(path)
