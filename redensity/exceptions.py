"""
Exceptions raised by redensity.

Invalid option values raise the builtin ValueError. Everything that is
specific to density estimation lives here.
"""

from typing import List, Optional


class UnsupportedConfiguration(Exception):
    """Raised when an estimator cannot model the requested variable partition.

    Fatal at initialization time: an estimator that rejected its target /
    conditioned variables is never retried.
    """

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        self.problems = problems or []
        if self.problems:
            message += "\n" + "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(message)
