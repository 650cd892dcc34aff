from __future__ import annotations

from typing import Dict, List, Literal, Tuple, get_args

from pydantic import BaseModel

from javatyper.services.extractor.schema import Example

Topic = Literal[
    "Arrays",
    "Strings",
    "Loops",
    "Control Flow",
    "Classes & Objects",
    "Constructors",
    "Inheritance",
    "Polymorphism",
    "Interfaces",
    "Abstract Classes",
    "Exceptions",
    "Collections",
    "Generics",
    "File I/O",
    "Threads",
    "Math & Utils",
    "Variables",
    "Methods",
    "Basics",
]

TOPICS: Tuple[str, ...] = get_args(Topic)


class TopicExample(Example):
    topic: Topic


class TopicSummary(BaseModel):
    total: int
    counts: Dict[str, int]


class TopicExamplesPayload(BaseModel):
    examples: List[TopicExample]
