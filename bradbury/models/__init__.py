from bradbury.models.entry import Entry
from bradbury.models.topic import Topic, TopicItem

__all__ = ["Entry", "Topic", "TopicItem"]
