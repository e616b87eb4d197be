"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
Hence, both the API layer (higher) and domain/db layers (lower) will use model(s) defined here to send to/receive from the Service
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass
from typing import Optional

# Type aliases to make GameModel easier to read
SaveState = bytes
SquareName = str


@dataclass
class GameModel:
    """Transport-safe representation of a chess game used between API, Service, DB, and Game layers.

    * state: the save state of the board (see src/chess/savegame.py)
    * phase / outcome: values of the Phase / Outcome enums in src/core/shared_types.py
    * selected: the square selected by the player to move, if any
    * pending_promotion: square of the pawn waiting to be promoted (not part of the save state)
    """

    state: SaveState
    phase: str
    outcome: str
    selected: Optional[SquareName] = None
    pending_promotion: Optional[SquareName] = None
