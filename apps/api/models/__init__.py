"""Models package."""

from .local_entry import LocalEntry
from .topic import SeriesType, StatusType, Topic, TopicChanges, TopicDraft, TopicStatusUpdate
from .reference_note import ReferenceNote
