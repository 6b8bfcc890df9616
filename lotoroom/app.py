# lotoroom/app.py
import asyncio
import logging
from typing import Dict

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .models import (ClientHello, ClientAction, CreateRoomRequest, Room,
                     ServerAck, ServerRoom, ServerState)
from .state import new_room, new_game, new_room_code, apply_room_action, apply_action_checked, handle_leave
from .persistence import save_room, load_room, save_game, load_game, update_game, changed_fields, delete_room
from .tickets import ticket_groups, find_ticket
from .visibility import view_for

logger = logging.getLogger(__name__)

app = FastAPI(title="LotoRoom")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ROOM_ACTIONS = ("draw_number", "reset")

# room_id -> {"room": Room, "game": XiDachGame | None, "peers": {ws: player_id}, "lock": asyncio.Lock}
rooms: Dict[str, Dict[str, object]] = {}

def _ctx(room: Room, game=None) -> Dict[str, object]:
    return {"room": room, "game": game, "peers": {}, "lock": asyncio.Lock()}

async def _send(ws: WebSocket, msg):
    await ws.send_json(msg.model_dump())

async def _send_snapshot(ws: WebSocket, ctx, player_id: str):
    await _send(ws, ServerRoom(kind="room", room=ctx["room"]))
    if ctx["game"] is not None:
        await _send(ws, ServerState(kind="state", state=view_for(ctx["game"], player_id)))

async def _broadcast(room_id: str):
    ctx = rooms.get(room_id)
    if ctx is None:
        return
    dead = []
    for peer, pid in list(ctx["peers"].items()):  # type: ignore[union-attr]
        try:
            await _send_snapshot(peer, ctx, pid)
        except Exception:
            logger.warning("room %s: dropping unreachable peer %s", room_id, pid)
            dead.append(peer)
    for d in dead:
        ctx["peers"].pop(d, None)  # type: ignore[union-attr]

@app.post("/api/rooms")
async def create_room(req: CreateRoomRequest):
    room_id = new_room_code()
    while room_id in rooms:
        room_id = new_room_code()
    room = new_room(room_id, req.player_id, req.game_type)
    game = new_game(room_id, req.player_id) if req.game_type == "xidach" else None
    rooms[room_id] = _ctx(room, game)
    logger.info("room %s created by %s (%s)", room_id, req.player_id, req.game_type)
    return room.model_dump()

@app.get("/api/rooms/{room_id}")
async def get_room(room_id: str):
    ctx = rooms.get(room_id.upper())
    if not ctx:
        raise HTTPException(404, "Room not found")
    return ctx["room"].model_dump()  # type: ignore[union-attr]

@app.get("/api/tickets")
async def list_tickets():
    return {"groups": [g.model_dump() for g in ticket_groups()]}

@app.get("/api/tickets/{ticket_id}")
async def get_ticket(ticket_id: str):
    t = find_ticket(ticket_id)
    if t is None:
        raise HTTPException(404, "Ticket not found")
    return t.model_dump()

def _save_game(game):
    # write only the fields that moved since the last save
    stored = load_game(game.id)
    if stored is None:
        save_game(game)
        return
    fields = changed_fields(stored, game)
    if fields:
        update_game(game.id, **fields)

@app.post("/api/save/{room_id}")
async def http_save(room_id: str):
    room_id = room_id.upper()
    ctx = rooms.get(room_id)
    if not ctx:
        return {"ok": False, "msg": "Room not found"}
    async with ctx["lock"]:  # type: ignore[union-attr]
        save_room(ctx["room"])  # type: ignore[arg-type]
        if ctx["game"] is not None:
            _save_game(ctx["game"])  # type: ignore[arg-type]
    return {"ok": True}

@app.post("/api/load/{room_id}")
async def http_load(room_id: str):
    room_id = room_id.upper()
    room = load_room(room_id)
    if not room:
        return {"ok": False, "msg": "No saved state"}
    game = load_game(room_id)
    ctx = rooms.get(room_id)
    if ctx is None:
        rooms[room_id] = _ctx(room, game)
    else:
        async with ctx["lock"]:  # type: ignore[union-attr]
            ctx["room"], ctx["game"] = room, game
    await _broadcast(room_id)
    return {"ok": True}

async def _dispatch(room_id: str, player_id: str, act: ClientAction) -> str | None:
    """Apply one action against the latest committed state. Returns a rejection reason."""
    ctx = rooms[room_id]
    async with ctx["lock"]:  # type: ignore[union-attr]
        if act.type in ROOM_ACTIONS:
            room, reason = apply_room_action(ctx["room"], player_id, act.type)  # type: ignore[arg-type]
            if reason is None:
                ctx["room"] = room
        elif ctx["game"] is None:
            return "no_game"
        else:
            game, reason = apply_action_checked(ctx["game"], player_id, act.type, act.payload)  # type: ignore[arg-type]
            if reason is None:
                ctx["game"] = game
    if reason is not None:
        return reason.value
    await _broadcast(room_id)
    return None

async def _leave(room_id: str, player_id: str):
    ctx = rooms.get(room_id)
    if ctx is None:
        return
    async with ctx["lock"]:  # type: ignore[union-attr]
        remaining = set(ctx["peers"].values())  # type: ignore[union-attr]
        if player_id in remaining:
            return  # still connected from another socket
        game, room = handle_leave(ctx["game"], ctx["room"], [player_id], remaining)  # type: ignore[arg-type]
        if room is None:
            rooms.pop(room_id, None)
            delete_room(room_id)
            return
        ctx["game"], ctx["room"] = game, room
    await _broadcast(room_id)

@app.websocket("/ws/{room_id}")
async def ws_room(ws: WebSocket, room_id: str):
    await ws.accept()
    room_id = room_id.upper()
    player_id = None
    try:
        # First message must be the hello payload
        hello = ClientHello.model_validate_json(await ws.receive_text())

        ctx = rooms.get(room_id)
        if ctx is None:
            room = load_room(room_id)
            if room is None:
                await _send(ws, ServerAck(kind="ack", ok=False, msg="Room not found"))
                await ws.close()
                return
            ctx = rooms[room_id] = _ctx(room, load_game(room_id))

        player_id = hello.player_id
        ctx["peers"][ws] = player_id  # type: ignore[index]
        await _send_snapshot(ws, ctx, player_id)

        while True:
            raw = await ws.receive_text()
            try:
                act = ClientAction.model_validate_json(raw)
            except ValidationError as e:
                await _send(ws, ServerAck(kind="ack", ok=False, msg=f"bad message: {e}"))
                continue
            if act.type == "join" and hello.name:
                act.payload.setdefault("name", hello.name)
            reason = await _dispatch(room_id, player_id, act)
            if reason is not None:
                await _send(ws, ServerAck(kind="ack", ok=False, msg=reason))

    except WebSocketDisconnect:
        pass
    except ValidationError as e:
        logger.info("room %s: bad hello: %s", room_id, e)
        await _send(ws, ServerAck(kind="ack", ok=False, msg="bad hello"))
    finally:
        ctx = rooms.get(room_id)
        if ctx is not None:
            ctx["peers"].pop(ws, None)  # type: ignore[union-attr]
            if player_id is not None:
                await _leave(room_id, player_id)
