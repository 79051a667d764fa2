"""Utterances for GitLab - embed issue comment threads into documents."""

__version__ = "0.1.0"
