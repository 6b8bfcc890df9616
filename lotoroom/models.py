from datetime import datetime, timezone
from typing import Dict, List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field

Suit = Literal["♠","♥","♦","♣"]
Rank = Literal["2","3","4","5","6","7","8","9","10","J","Q","K","A"]

GameType = Literal["loto","xidach"]
RoomStatus = Literal["waiting","playing","finished"]

PlayerStatus = Literal["playing","stand","bust"]
DealerStatus = Literal["waiting","playing","stand","bust"]
# "dealing" is never entered by the reducer but may appear in stored documents
Phase = Literal["waiting","dealing","player_turns","dealer_turn","dealer_done","result"]
Outcome = Literal["win","lose","draw"]

TicketColor = Literal["blue","navy","green","red","orange","yellow","purple","pink"]
TicketCell = Optional[int]
StripGrid = List[List[TicketCell]]  # 3 rows x 9 cols

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

class Card(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: Rank
    suit: Suit

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

class CompareResult(BaseModel):
    outcome: Outcome
    multiplier: int = 1  # 1 = normal, 2 = Xì Dách, 3 = Xì Bàn

class XiDachPlayerState(BaseModel):
    cards: List[str] = Field(default_factory=list)
    status: PlayerStatus = "playing"
    score: int = 0
    name: Optional[str] = None
    revealed_cards: List[int] = Field(default_factory=list)  # indices shown to everyone

class XiDachGame(BaseModel):
    id: str
    deck: List[str] = Field(default_factory=list)
    dealer_id: str
    # dict order is join order
    players: Dict[str, XiDachPlayerState] = Field(default_factory=dict)
    dealer_cards: List[str] = Field(default_factory=list)
    dealer_status: DealerStatus = "waiting"
    current_turn: Optional[str] = None
    phase: Phase = "waiting"
    results: Dict[str, CompareResult] = Field(default_factory=dict)
    created_at: str = Field(default_factory=_now)

class Room(BaseModel):
    id: str
    host_id: str
    game_type: GameType = "loto"
    status: RoomStatus = "waiting"
    current_numbers: List[int] = Field(default_factory=list)
    created_at: str = Field(default_factory=_now)

class LotoTicket(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    strips: List[StripGrid]  # always three strips
    color: TicketColor

class TicketGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    color: TicketColor
    label: str
    tickets: List[LotoTicket]

# --- per-observer projection of a XiDachGame (deck withheld, hidden cards are None)
class PlayerView(BaseModel):
    cards: List[Optional[str]] = Field(default_factory=list)
    status: Optional[PlayerStatus] = None
    score: Optional[int] = None
    name: Optional[str] = None
    revealed_cards: List[int] = Field(default_factory=list)

class XiDachView(BaseModel):
    id: str
    deck_size: int
    dealer_id: str
    players: Dict[str, PlayerView] = Field(default_factory=dict)
    dealer_cards: List[Optional[str]] = Field(default_factory=list)
    dealer_status: DealerStatus = "waiting"
    dealer_score: Optional[int] = None
    current_turn: Optional[str] = None
    phase: Phase = "waiting"
    results: Dict[str, CompareResult] = Field(default_factory=dict)

# --- wire messages

class CreateRoomRequest(BaseModel):
    game_type: GameType
    player_id: str

class ClientHello(BaseModel):
    kind: Literal["hello"]
    player_id: str
    name: Optional[str] = None

class ClientAction(BaseModel):
    kind: Literal["action"]
    type: str
    payload: Dict = Field(default_factory=dict)

class ServerState(BaseModel):
    kind: Literal["state"]
    state: XiDachView

class ServerRoom(BaseModel):
    kind: Literal["room"]
    room: Room

class ServerAck(BaseModel):
    kind: Literal["ack"]
    ok: bool
    msg: Optional[str] = None
