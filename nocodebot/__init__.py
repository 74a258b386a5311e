"""nocode-slackbot - Replay pre-authored Slack workflows

This package loads Block Kit message templates from a directory and serves them
in response to slash commands and button clicks. Each click is recorded in an
in-memory completion ledger that can be listed back with a command.
"""

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
