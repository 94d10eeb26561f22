# spcorpus/meta.py
from __future__ import annotations
import logging
from typing import Dict

from .config import TrainerConfig
from .models import MetaPiece, PieceType

log = logging.getLogger(__name__)


def init_meta_pieces(config: TrainerConfig) -> Dict[int, MetaPiece]:
    """
    Reserve the vocabulary ids of meta pieces.

    unk/bos/eos/pad take their configured ids (-1 disables one); control
    symbols and then user-defined symbols take the lowest free ids. The unk
    piece is mandatory; ids must be unique and inside [0, vocab_size); piece
    strings must be unique.

    Returns a dict sorted by id.
    """
    pieces: Dict[int, MetaPiece] = {}
    seen: set[str] = set()

    def _reserve(vid: int, piece: str, ptype: PieceType) -> None:
        if not piece:
            raise ValueError("meta piece must be a non-empty string")
        if not 0 <= vid < config.vocab_size:
            raise ValueError(f"id {vid} for {piece!r} is outside [0, {config.vocab_size})")
        if vid in pieces:
            raise ValueError(f"id {vid} is already used by {pieces[vid].piece!r}")
        if piece in seen:
            raise ValueError(f"meta piece {piece!r} is defined twice")
        pieces[vid] = MetaPiece(piece, ptype)
        seen.add(piece)

    if config.unk_id < 0:
        raise ValueError("unk_id must be set")
    for vid, piece in ((config.unk_id, config.unk_piece),
                       (config.bos_id, config.bos_piece),
                       (config.eos_id, config.eos_piece),
                       (config.pad_id, config.pad_piece)):
        if vid < 0:
            continue
        ptype = PieceType.UNKNOWN if vid == config.unk_id else PieceType.CONTROL
        _reserve(vid, piece, ptype)

    next_id = 0
    for symbols, ptype in ((config.control_symbols, PieceType.CONTROL),
                           (config.user_defined_symbols, PieceType.USER_DEFINED)):
        for piece in symbols:
            while next_id in pieces:
                next_id += 1
            _reserve(next_id, piece, ptype)

    log.info("Reserved %d meta pieces", len(pieces))
    return dict(sorted(pieces.items()))
