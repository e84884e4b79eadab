"""
Dockerfile instruction parser
"""

import re
from typing import Callable, List

from .models import Dockerfile, DockerInstruction, BuildStage

INSTRUCTION_RE = re.compile(r'^([A-Za-z]+)\s*(.*)$')
FROM_RE = re.compile(r'^(?:--\S+\s+)*(\S+)(?:\s+AS\s+(\S+))?\s*$', re.IGNORECASE)


def parse_dockerfile(text: str) -> Dockerfile:
    """Split Dockerfile text into instructions, joining line continuations"""
    instructions: List[DockerInstruction] = []
    stages: List[BuildStage] = []

    keyword = None
    parts: List[str] = []
    start_line = 0
    continuing = False

    def flush() -> None:
        if keyword is None:
            return
        arguments = ' '.join(p for p in parts if p)
        instructions.append(DockerInstruction(instruction=keyword, arguments=arguments, line=start_line))
        if keyword == 'FROM':
            match = FROM_RE.match(arguments)
            if match:
                stages.append(BuildStage(image=match.group(1), name=match.group(2), line=start_line))

    for index, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.strip()

        if continuing:
            # comments and blank lines inside a continuation are dropped
            if not stripped or stripped.startswith('#'):
                continue
            continuing = stripped.endswith('\\')
            parts.append(stripped.rstrip('\\').strip())
            if not continuing:
                flush()
                keyword = None
            continue

        if not stripped or stripped.startswith('#'):
            continue

        match = INSTRUCTION_RE.match(stripped)
        if not match:
            continue

        keyword = match.group(1).upper()
        args = match.group(2)
        start_line = index
        continuing = args.endswith('\\')
        parts = [args.rstrip('\\').strip()]
        if not continuing:
            flush()
            keyword = None

    if continuing:
        flush()

    return Dockerfile(instructions=instructions, stages=stages)


def parse_dockerfile_file(file_path: str, read_file: Callable[[str], str]) -> Dockerfile:
    return parse_dockerfile(read_file(file_path))
