from __future__ import annotations

import bisect
import hashlib
import re
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Set, Tuple

from .schema import CurationPolicy, Example

OUTPUT_LOOKAHEAD_CHARS = 1200
ERROR_CONTEXT_CHARS = 300
TITLE_LOOKBACK_CHARS = 400
FALLBACK_OUTPUT_LINES = 30

_CLASS_HEADER = re.compile(
    r"\b(?:public\s+)?class\s+([A-Za-z_$][\w$]*)"
    r"(?:\s*<[^>{;]*>)?(?:\s+(?:extends|implements)\s+[^{;]*)?\s*\{",
    re.IGNORECASE,
)
_CLASS_LINE = re.compile(r"^\s*(?:public\s+)?class\s+([A-Za-z_$][\w$]*)", re.IGNORECASE)
_OUTPUT_LABEL = re.compile(r"\b(?:out\s*put|ouput)\s*:", re.IGNORECASE)
_OUTPUT_STOP = re.compile(r"\n[ \t]*\n|\n[ \t]*-{2,}|example|\bnote\b", re.IGNORECASE)
_WILL_GIVE_ERROR = re.compile(r"will\s+give\s+error", re.IGNORECASE)
_ERROR_WORD = re.compile(r"error", re.IGNORECASE)
_TITLE_LINE = re.compile(r"example[^\n]*", re.IGNORECASE)
_LEADING_BLANK_LINES = re.compile(r"\A(?:[ \t]*\n)+")
_FENCED_BLOCK = re.compile(r"```(?:java)?([\s\S]*?)```", re.IGNORECASE)
_NAIVE_CLASS_BLOCK = re.compile(r"(?:public\s+)?class\s+[\w$]+\s*\{[\s\S]*?\n\}")


class _Candidate(NamedTuple):
    class_name: str
    block: str
    start: int
    end: int
    output: Optional[str]


def normalize_code(text: str) -> str:
    """Canonical form of a snippet used both for display and as the typing target.

    Tabs become two spaces, line endings become ``\\n``, blank lines at the top
    are dropped (the first code line keeps its indentation) and trailing
    whitespace is replaced by a single newline.
    """
    normalized = text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", "  ")
    normalized = _LEADING_BLANK_LINES.sub("", normalized).rstrip()
    if not normalized:
        return ""
    return normalized + "\n"


def content_hash(code: str) -> str:
    return hashlib.sha1(code.encode("utf-8")).hexdigest()[:12]


def extract_examples(notes: str) -> List[Example]:
    """Extract runnable class examples from raw lecture notes.

    Class blocks are located with a brace-depth scan; when that finds nothing
    usable the line-oriented scan is tried instead. Blocks annotated as
    failing (an error in their output, or a nearby "will give error" note)
    are dropped, and duplicates by ``(class name, content hash)`` are skipped.
    """
    text = notes or ""
    examples = _finalize(text, _scan_class_blocks(text))
    if not examples:
        examples = _finalize(text, _scan_class_lines(text))
    return examples


def extract_all_examples(notes: str) -> List[Example]:
    """Uncurated variant: fenced blocks, else naive class blocks, else the whole text."""
    text = (notes or "").replace("\r\n", "\n")
    candidates = [match.group(1) for match in _FENCED_BLOCK.finditer(text)]
    if not candidates:
        candidates = [match.group(0) for match in _NAIVE_CLASS_BLOCK.finditer(text)]
    if not candidates:
        candidates = [text]
    examples: List[Example] = []
    for code in (normalize_code(candidate) for candidate in candidates):
        if not code:
            continue
        number = len(examples) + 1
        examples.append(
            Example(
                id=f"ex-{number}",
                title=f"Example {number}",
                filename=f"Example{number}.java",
                code=code,
            )
        )
    return examples


def curate(examples: Sequence[Example], policy: Optional[CurationPolicy] = None) -> List[Example]:
    policy = policy or CurationPolicy()
    kept = [example for example in examples if policy.min_length <= len(example.code) <= policy.max_length]
    return kept[: policy.limit]


def match_braces(text: str) -> Dict[int, int]:
    """Map the index of every `{` that gets closed to the index of its `}`.

    One pass with a stack; stray closing braces are ignored and braces that
    never close are left out of the map.
    """
    pairs: Dict[int, int] = {}
    stack: List[int] = []
    for pos, ch in enumerate(text):
        if ch == "{":
            stack.append(pos)
        elif ch == "}" and stack:
            pairs[stack.pop()] = pos
    return pairs


# Candidate scanners ------------------------------------------------------


def _scan_class_blocks(text: str) -> Iterator[_Candidate]:
    headers = list(_CLASS_HEADER.finditer(text))
    starts = [header.start() for header in headers]
    pairs = match_braces(text)
    consumed_until = 0
    for header in headers:
        if header.start() < consumed_until:
            continue
        close = pairs.get(header.end() - 1)
        if close is None:
            continue
        end = close + 1
        consumed_until = end
        # Output belongs to this block only until the next class starts.
        following = bisect.bisect_left(starts, end)
        next_start = starts[following] if following < len(starts) else len(text)
        window = text[end : min(next_start, end + OUTPUT_LOOKAHEAD_CHARS)]
        yield _Candidate(header.group(1), text[header.start() : end], header.start(), end, _find_output(window))


def _scan_class_lines(text: str) -> Iterator[_Candidate]:
    lines = text.splitlines(keepends=True)
    offsets: List[int] = []
    position = 0
    for line in lines:
        offsets.append(position)
        position += len(line)

    i = 0
    while i < len(lines):
        header = _CLASS_LINE.match(lines[i])
        if header is None:
            i += 1
            continue
        depth = 0
        started = False
        last = i
        while last < len(lines):
            for ch in lines[last]:
                if ch == "{":
                    depth += 1
                    started = True
                elif ch == "}":
                    depth -= 1
            if started and depth <= 0:
                break
            last += 1
        last = min(last, len(lines) - 1)
        start = offsets[i]
        end = offsets[last] + len(lines[last])
        output = _find_output_lines(lines[last + 1 : last + 1 + FALLBACK_OUTPUT_LINES])
        yield _Candidate(header.group(1), "".join(lines[i : last + 1]), start, end, output)
        i = last + 1


# Helpers -----------------------------------------------------------------


def _finalize(text: str, candidates: Iterator[_Candidate]) -> List[Example]:
    seen: Set[Tuple[str, str]] = set()
    examples: List[Example] = []
    for candidate in candidates:
        if _is_error_annotated(text, candidate):
            continue
        code = normalize_code(candidate.block)
        key = (candidate.class_name, content_hash(code))
        if not code or key in seen:
            continue
        seen.add(key)
        examples.append(
            Example(
                id=f"ex-{len(examples) + 1}",
                title=_find_title(text, candidate.start) or f"Example - {candidate.class_name}.java",
                filename=f"{candidate.class_name}.java",
                code=code,
                output=candidate.output,
            )
        )
    return examples


def _find_output(window: str) -> Optional[str]:
    label = _OUTPUT_LABEL.search(window)
    if label is None:
        return None
    body = window[label.end() :]
    # Skip whitespace after the colon so a blank line there is not a terminator.
    stripped = body.lstrip()
    stop = _OUTPUT_STOP.search(stripped)
    captured = stripped[: stop.start()] if stop else stripped
    return _clean_output(captured)


def _find_output_lines(lines: Sequence[str]) -> Optional[str]:
    for index, line in enumerate(lines):
        label = _OUTPUT_LABEL.match(line.lstrip())
        if label is None:
            continue
        collected: List[str] = []
        rest = line.lstrip()[label.end() :].strip()
        if rest:
            collected.append(rest)
        for follow in lines[index + 1 : index + 1 + FALLBACK_OUTPUT_LINES]:
            if not follow.strip():
                break
            collected.append(follow.rstrip("\r\n"))
        return _clean_output("\n".join(collected))
    return None


def _clean_output(value: str) -> Optional[str]:
    cleaned = value.replace("\r\n", "\n").strip()
    return cleaned or None


def _is_error_annotated(text: str, candidate: _Candidate) -> bool:
    if candidate.output and _ERROR_WORD.search(candidate.output):
        return True
    around = text[max(0, candidate.start - ERROR_CONTEXT_CHARS) : candidate.end + ERROR_CONTEXT_CHARS]
    return _WILL_GIVE_ERROR.search(around) is not None


def _find_title(text: str, start: int) -> Optional[str]:
    prior = text[max(0, start - TITLE_LOOKBACK_CHARS) : start]
    matches = list(_TITLE_LINE.finditer(prior))
    if not matches:
        return None
    return matches[-1].group(0).strip() or None
