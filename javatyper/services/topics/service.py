from __future__ import annotations

import re
from typing import List, Optional, Pattern, Sequence, Tuple

from javatyper.services.extractor.schema import Example

from .schema import TOPICS, Topic, TopicExample, TopicSummary

# Evaluated in order, first match wins. Several categories overlap (almost
# every snippet declares a class), so the order decides the label.
_RULES: Tuple[Tuple[Topic, Pattern[str]], ...] = (
    ("Arrays", re.compile(r"\b(array|int\[\]|new\s+int\[\])")),
    ("Strings", re.compile(r"\b(string|char\[\]|substring|equals|compareto|builder|buffer)")),
    ("Loops", re.compile(r"\b(for\s*\(|while\s*\(|do\s*\{)")),
    ("Control Flow", re.compile(r"\b(if\s*\(|switch\s*\()|case\s+|default\s*:")),
    ("Classes & Objects", re.compile(r"\b(public|private|protected)\s+class\b")),
    ("Constructors", re.compile(r"\bconstructor|this\s*\(|super\s*\(")),
    ("Inheritance", re.compile(r"\bextends\b")),
    ("Polymorphism", re.compile(r"\boverride|@override|dynamic\s+dispatch|polymorphism")),
    ("Interfaces", re.compile(r"\binterface\b")),
    ("Abstract Classes", re.compile(r"\babstract\s+class\b")),
    ("Exceptions", re.compile(r"\btry\s*\{|catch\s*\(|finally\b|throw\s+new\b|exception")),
    ("Collections", re.compile(r"\b(list|arraylist|map|hashmap|set|hashset|iterator|collections)\b")),
    ("Generics", re.compile(r"\b<\s*[a-z_][\w]*\s*>\b")),
    ("File I/O", re.compile(r"\bfile|filereader|filewriter|buffered(reader|writer)|scanner\b")),
    ("Threads", re.compile(r"\bthread|runnable|synchronized|wait\(|notify\(|notifyall\(")),
    ("Math & Utils", re.compile(r"\b(math|random|scanner)\b")),
    ("Variables", re.compile(r"\b(int|double|float|boolean|char|long|short|byte)\b")),
    ("Methods", re.compile(r"\bmethod|void\s+[a-z_]\w*\(|return\b")),
)


def derive_topic(example: Example) -> Topic:
    label = f"{example.title or ''} {example.filename or ''}".lower()
    code = (example.code or "").lower()
    for topic, pattern in _RULES:
        if pattern.search(code) or pattern.search(label):
            return topic
    return "Basics"


def with_topics(examples: Sequence[Example]) -> List[TopicExample]:
    return [TopicExample(**example.model_dump(), topic=derive_topic(example)) for example in examples]


def filter_by_topic(examples: Sequence[TopicExample], topic: Optional[str]) -> List[TopicExample]:
    if not topic:
        return list(examples)
    wanted = topic.strip().lower()
    return [example for example in examples if example.topic.lower() == wanted]


def group_by_topic(examples: Sequence[TopicExample]) -> TopicSummary:
    counts = {name: 0 for name in TOPICS}
    for example in examples:
        counts[example.topic] += 1
    return TopicSummary(
        total=len(examples),
        counts={name: count for name, count in counts.items() if count},
    )
