from .schema import TOPICS, Topic, TopicExample, TopicExamplesPayload, TopicSummary
from .service import derive_topic, filter_by_topic, group_by_topic, with_topics

__all__ = [
    "TOPICS",
    "Topic",
    "TopicExample",
    "TopicExamplesPayload",
    "TopicSummary",
    "derive_topic",
    "filter_by_topic",
    "group_by_topic",
    "with_topics",
]
