"""ccremote - remote mode for coding-assistant sessions.

Pauses a session when a task stops, notifies a human through a messaging
channel and resumes (or ends) the session based on the reply.
"""

__version__ = "0.3.0"
