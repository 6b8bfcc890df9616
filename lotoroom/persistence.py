import json
import logging
import os
from pathlib import Path
from .models import Room, XiDachGame

logger = logging.getLogger(__name__)

DATA_DIR = Path(os.getenv("LOTOROOM_DATA_DIR", Path(__file__).parent / "data"))
ROOMS_DIR = DATA_DIR / "rooms"
GAMES_DIR = DATA_DIR / "games"
ROOMS_DIR.mkdir(parents=True, exist_ok=True)
GAMES_DIR.mkdir(parents=True, exist_ok=True)

# top-level fields a round transition may touch
GAME_FIELDS = ("deck","players","dealer_id","dealer_cards","dealer_status","current_turn","phase","results")

def _write(f: Path, text: str):
    # write-then-rename so readers never see a half-written document
    tmp = f.with_suffix(".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(f)

def save_room(room: Room):
    _write(ROOMS_DIR / f"{room.id}.json", room.model_dump_json(indent=2))

def load_room(room_id: str) -> Room | None:
    f = ROOMS_DIR / f"{room_id}.json"
    if not f.exists():
        return None
    data = json.loads(f.read_text(encoding="utf-8"))
    return Room.model_validate(data)

def save_game(game: XiDachGame):
    _write(GAMES_DIR / f"{game.id}.json", game.model_dump_json(indent=2))

def load_game(room_id: str) -> XiDachGame | None:
    f = GAMES_DIR / f"{room_id}.json"
    if not f.exists():
        return None
    data = json.loads(f.read_text(encoding="utf-8"))
    return XiDachGame.model_validate(data)

def update_game(room_id: str, **fields) -> XiDachGame | None:
    """Partial update: only the named top-level fields are replaced."""
    game = load_game(room_id)
    if game is None:
        return None
    unknown = set(fields) - set(GAME_FIELDS)
    if unknown:
        raise ValueError(f"not updatable: {', '.join(sorted(unknown))}")
    data = game.model_dump()
    data.update(fields)
    game = XiDachGame.model_validate(data)
    save_game(game)
    return game

def changed_fields(old: XiDachGame, new: XiDachGame) -> dict:
    a, b = old.model_dump(), new.model_dump()
    return {k: b[k] for k in GAME_FIELDS if a[k] != b[k]}

def delete_room(room_id: str):
    for f in (ROOMS_DIR / f"{room_id}.json", GAMES_DIR / f"{room_id}.json"):
        if f.exists():
            f.unlink()
    logger.info("deleted stored room %s", room_id)
