"""Git repository cleanup tool.

Features:
- Delete branches merged into the default branch
- Delete branches with no recent commits
- Delete branches whose upstream is gone
- List the largest files in history
- Prune remote tracking branches
"""

__version__ = "0.1.0"
