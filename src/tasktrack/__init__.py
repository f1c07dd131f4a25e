"""TaskTrack — personal task management API.

Users register, log in with a bearer token and manage their own tasks.
Administrators audit every account and task through a separate,
role-gated path.
"""

__version__ = "0.1.0"
