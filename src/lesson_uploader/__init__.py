"""Lesson video upload orchestration: filename classification, scheduling and embeds."""

__version__ = "0.1.0"
