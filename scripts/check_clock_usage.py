"""Fail when app code reads the wall clock without going through app.core.time_provider."""

from __future__ import annotations

import re
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
APP_DIR = ROOT / 'app'
ALLOWED = ('app/core/time_provider.py',)

CLOCK_CALLS = [
    re.compile(pattern)
    for pattern in (
        r'\bdatetime\.(now|utcnow|today)\(',
        r'\bdate\.today\(',
        r'\bdatetime\.utcfromtimestamp\(',
        r'\btime\.time\(',
    )
]


def find_violations(app_dir: Path = APP_DIR) -> list[tuple[str, int, str]]:
    found = []
    for file_path in sorted(app_dir.rglob('*.py')):
        relative = file_path.relative_to(app_dir.parent).as_posix()
        if relative in ALLOWED:
            continue
        for line_no, line in enumerate(file_path.read_text(encoding='utf-8').splitlines(), start=1):
            if line.lstrip().startswith('#'):
                continue
            if any(regex.search(line) for regex in CLOCK_CALLS):
                found.append((relative, line_no, line.strip()))
    return found


def main() -> int:
    violations = find_violations()
    if violations:
        print('Clock reads must go through app.core.time_provider:')
        for path, line_no, line in violations:
            print(f' - {path}:{line_no}: {line}')
        return 1
    print('clock_usage ok')
    return 0


if __name__ == '__main__':
    sys.exit(main())
