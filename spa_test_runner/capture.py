"""Artifact capture capability used for evidence collection."""

from typing import Protocol


class ArtifactCapture(Protocol):
    """Produces an opaque artifact, such as an encoded screenshot."""

    async def capture(self, target: str | None = None) -> str | None:
        """Capture the whole application or the element matching ``target``.

        Returns:
            The encoded artifact, or None if nothing could be captured

        """
