"""Region markers delimiting generator-owned blocks inside generated files.

A region looks like::

    // >>> doctype-ui:begin columns
    ...owned content...
    // <<< doctype-ui:end columns

Marker lines may be indented. Scanning never guesses boundaries: nested,
duplicated, unmatched or unterminated markers are reported as problems and
the affected region is not returned.
"""
import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

COMMENT_PREFIX = "//"
BEGIN_TAG = ">>> doctype-ui:begin"
END_TAG = "<<< doctype-ui:end"

REGION_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9_.:-]*$")
_BEGIN_RE = re.compile(r"^[ \t]*// >>> doctype-ui:begin (\S+)[ \t]*$")
_END_RE = re.compile(r"^[ \t]*// <<< doctype-ui:end (\S+)[ \t]*$")


@dataclass(frozen=True)
class Region:
    name: str
    start: int  # offset of the begin marker line
    inner_start: int  # offset just past the begin marker line
    inner_end: int  # offset of the end marker line
    end: int  # offset just past the end marker line


def begin_marker(name: str) -> str:
    return f"{COMMENT_PREFIX} {BEGIN_TAG} {name}"


def end_marker(name: str) -> str:
    return f"{COMMENT_PREFIX} {END_TAG} {name}"


def region(name: str, body: str) -> str:
    """Wrap body in a named marker pair. Body is normalised to end with a newline."""
    if not REGION_NAME_RE.match(name):
        raise ValueError(f"Invalid region name: {name!r}")
    if body and not body.endswith("\n"):
        body += "\n"
    return f"{begin_marker(name)}\n{body}{end_marker(name)}\n"


def _strip_eol(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n") or line.endswith("\r"):
        return line[:-1]
    return line


def scan_regions(text: str) -> Tuple[Dict[str, Region], Dict[str, str]]:
    """
    Locate marker pairs in text.

    Returns:
        (regions, problems): well-formed regions by name, and a reason for
        every region name whose markers are malformed
    """
    regions: Dict[str, Region] = {}
    problems: Dict[str, str] = {}
    seen: List[str] = []
    open_name = None
    open_start = 0
    open_inner = 0
    offset = 0

    def problem(name: str, reason: str) -> None:
        problems.setdefault(name, reason)
        regions.pop(name, None)

    for line in text.splitlines(keepends=True):
        line_start = offset
        offset += len(line)
        bare = _strip_eol(line)

        begin = _BEGIN_RE.match(bare)
        if begin:
            name = begin.group(1)
            if open_name is not None:
                problem(open_name, f"begin marker for '{name}' nested inside region '{open_name}'")
                problem(name, f"begin marker nested inside region '{open_name}'")
                open_name = None
                continue
            if name in seen:
                problem(name, "duplicate begin marker")
                continue
            seen.append(name)
            open_name, open_start, open_inner = name, line_start, offset
            continue

        end = _END_RE.match(bare)
        if end:
            name = end.group(1)
            if open_name is None:
                problem(name, "end marker without matching begin marker")
            elif name != open_name:
                problem(open_name, f"closed by end marker for '{name}'")
                problem(name, "end marker without matching begin marker")
                open_name = None
            else:
                if name not in problems:
                    regions[name] = Region(name, open_start, open_inner, line_start, offset)
                open_name = None

    if open_name is not None:
        problem(open_name, "missing end marker")

    return regions, problems


def region_names(text: str) -> List[str]:
    """Names of well-formed regions in document order."""
    regions, _ = scan_regions(text)
    return [r.name for r in sorted(regions.values(), key=lambda r: r.start)]
