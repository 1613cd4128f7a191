"""
gh-todoist-sync: Two-way sync between GitHub issues and Todoist tasks.

This package mirrors the issues of one GitHub repository into one Todoist
project and feeds task completion back into the issue open/closed state.
"""

__version__ = "1.0.0"
