"""Plugin package initialiser.

Kept side-effect free: concrete plugins (``logging``, ``pydantic``) register
themselves on ``Router`` when imported, which ``smartchain.__init__`` does.
"""

__all__: list[str] = []
