from datetime import datetime
from typing import List, Optional

from rich import box
from rich.align import Align
from rich.console import Group
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from .games import OUTCOME_STYLES, GameVariant
from .lobby import LobbyView
from .models import NO_WINNER, GameRoom, Player, WalletBalance
from .notify import Notification
from .reconciler import Phase, PhaseKind
from .room import RoomView


def _format_time(value: str) -> str:
    if not value:
        return "--"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%b %d %H:%M")
    except ValueError:
        return value


def outcome_text(outcome: Optional[str]) -> Text:
    if not outcome or outcome == NO_WINNER:
        return Text("No winner", style=OUTCOME_STYLES[NO_WINNER])
    return Text(outcome.upper(), style=OUTCOME_STYLES.get(outcome, "bold white"))


# ============================================================================
# SHARED BOXES
# ============================================================================

def generate_header(title: str, game: GameVariant, status: str, status_style: str = "green") -> Panel:
    grid = Table.grid(expand=True)
    grid.add_column(justify="left", ratio=1)
    grid.add_column(justify="right")
    grid.add_row(
        Text.assemble((f"{game.name} ", game.theme["title"]), (title, "bold white")),
        Text.assemble("Status: ", (status, status_style)),
    )
    return Panel(grid, border_style=game.theme["border"], box=box.ROUNDED)


def generate_wallet_box(wallet: Optional[WalletBalance]) -> Panel:
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="cyan", justify="left")
    grid.add_column(style="green bold", justify="right")
    if wallet is None:
        grid.add_row("Wallet:", Text("loading...", style="dim"))
    else:
        grid.add_row("Normal:", f"{wallet.normal:.2f}")
        grid.add_row("Benefit:", f"{wallet.benefit:.2f}")
        grid.add_row("Game:", f"{wallet.game:.2f}")
    return Panel(grid, title="[bold yellow]Wallet[/]", border_style="yellow", box=box.ROUNDED, padding=(0, 1))


def generate_footer(entries: List[Notification]) -> Panel:
    log_content = Table.grid(padding=(0, 1))
    log_content.add_column(style="dim white", width=10)
    log_content.add_column()
    for entry in entries:
        message = Text(entry.title, style=entry.style)
        if entry.description:
            message.append(f"  {entry.description}", style="white")
        log_content.add_row(entry.time, message)
    return Panel(log_content, title="[bold]Notifications[/]", border_style="white", box=box.ROUNDED)


# ============================================================================
# LOBBY
# ============================================================================

def generate_rooms_table(rooms: List[GameRoom], game: GameVariant) -> Table:
    table = Table(expand=True, box=box.SIMPLE_HEAD)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Room", style=game.theme["accent"])
    table.add_column("Entry", justify="right", style="green")
    table.add_column("x", justify="right", style="yellow")
    table.add_column("Players", justify="center", style="magenta")
    for outcome in game.outcomes:
        table.add_column(outcome.capitalize(), justify="right", style=OUTCOME_STYLES.get(outcome, "white"))
    table.add_column("Status", justify="center")
    table.add_column("Created", justify="right", style="dim")

    if not rooms:
        table.add_row("-", "All tables are busy. New rooms open every few minutes.", *[""] * (5 + len(game.outcomes)))
        return table

    for idx, room in enumerate(rooms, start=1):
        if room.is_open:
            status = Text("OPEN", style="bold green")
        elif room.status == "waiting":
            status = Text("FULL", style="bold yellow")
        else:
            status = Text("BUSY", style="bold red")
        table.add_row(
            str(idx),
            room.room_id,
            f"{room.entry_fee:,.2f}",
            f"{room.multiplier:g}",
            f"{room.current_players}/{room.max_players}",
            *[str(room.outcome_counts.get(o, 0)) for o in game.outcomes],
            status,
            _format_time(room.created_at),
        )
    return table


def render_lobby(lobby: LobbyView, entries: List[Notification]):
    if lobby.is_loading:
        status, style = "Loading...", "yellow"
    elif lobby.is_polling:
        status, style = "Updating...", "cyan"
    else:
        status, style = "Live", "green"

    rooms_panel = Panel(
        generate_rooms_table(lobby.snapshot(), lobby.game),
        title="[bold]Game Rooms[/]",
        border_style=lobby.game.theme["border"],
        box=box.ROUNDED,
    )
    return Group(
        generate_header("Lobby", lobby.game, status, style),
        generate_wallet_box(lobby.wallet),
        rooms_panel,
        generate_footer(entries),
    )


# ============================================================================
# ROOM
# ============================================================================

def _countdown_bar(value: int, total: int, label: str, style: str) -> Group:
    grid = Table.grid(expand=True)
    grid.add_column(ratio=1)
    grid.add_column(justify="right", width=8)
    completed = total if value <= 0 else max(0, total - value)
    grid.add_row(
        ProgressBar(total=total, completed=completed, width=None, complete_style=style, finished_style=style),
        Text(f"{value}s", style="bold white"),
    )
    return Group(Text(label, style=style), grid)


def _user_result_text(won: Optional[bool]) -> Text:
    if won is None:
        return Text("")
    if won:
        return Text("You won!", style="bold green")
    return Text("You lost this round", style="red")


def render_phase(phase: Optional[Phase], view: RoomView):
    """One renderable per phase kind"""
    durations = view.reconciler.durations

    if phase is None:
        body = Text("Loading game room...", style="dim italic")
    elif phase.kind == PhaseKind.WAITING:
        body = _countdown_bar(phase.countdown or 0, durations.waiting, "Waiting for players to join...", "cyan")
    elif phase.kind == PhaseKind.STARTING:
        body = _countdown_bar(phase.countdown or 0, durations.start, "Room is full! Round starts soon", "yellow")
    elif phase.kind == PhaseKind.AWAITING_RESULT:
        if phase.countdown:
            body = _countdown_bar(phase.countdown, durations.reveal, "Results are being computed...", "magenta")
        else:
            body = Text("Waiting for the server to announce the result...", style="magenta italic")
    elif phase.kind == PhaseKind.RESOLVED:
        body = Group(
            Align.center(Text.assemble("Winner: ", outcome_text(phase.outcome))),
            Align.center(_user_result_text(view.user_won)),
            Align.center(Text(f"Back to the lobby in {phase.countdown}s", style="dim")),
        )
    elif phase.kind == PhaseKind.REDIRECTING:
        body = Group(
            Align.center(Text.assemble("Winner: ", outcome_text(phase.outcome))),
            Align.center(_user_result_text(view.user_won)),
            Align.center(Text("Returning to the lobby...", style="dim")),
        )
    else:
        raise ValueError(f"Unhandled phase: {phase.kind}")

    return Panel(body, title="[bold]Round[/]", border_style=view.game.theme["border"], box=box.ROUNDED, padding=(0, 1))


def generate_room_info(view: RoomView) -> Panel:
    grid = Table.grid(expand=True, padding=(0, 2))
    grid.add_column(justify="center", ratio=1)
    grid.add_column(justify="center", ratio=1)
    grid.add_column(justify="center", ratio=1)
    grid.add_column(justify="center", ratio=2)

    snapshot = view.snapshot
    if snapshot is None:
        grid.add_row(Text(f"Room {view.room_id}", style="bold"), "--", "--", "--")
    else:
        room = snapshot.room
        counts = Text()
        for outcome in view.game.outcomes:
            counts.append(f"{outcome}: {room.outcome_counts.get(outcome, 0)}  ", style=OUTCOME_STYLES.get(outcome, "white"))
        grid.add_row(
            Text.assemble("Room ", (room.room_id, "bold yellow")),
            Text.assemble("Entry ", (f"{room.entry_fee:,.2f}", "bold green")),
            Text.assemble("Players ", (f"{room.current_players}/{room.max_players}", "bold magenta")),
            counts,
        )
    return Panel(grid, border_style="green", box=box.ROUNDED, padding=(0, 1))


def generate_players_table(players: List[Player], game: GameVariant, user_id: Optional[str] = None) -> Panel:
    table = Table(expand=True, box=box.SIMPLE_HEAD)
    table.add_column("Player", style="cyan")
    table.add_column("Prediction", justify="center")
    table.add_column("Stake", justify="right", style="green")
    table.add_column("Joined", justify="right", style="dim")
    table.add_column("", justify="center")

    if not players:
        table.add_row("-", "-", "-", "-", "")
    for player in players:
        prediction = player.prediction or "--"
        if player.selected_number is not None:
            prediction = f"{prediction} ({player.selected_number})"
        name = Text(player.user.name or player.user.email or player.user.id)
        if user_id and player.user.id == user_id:
            name.append(" (You)", style="bold yellow")
        table.add_row(
            name,
            Text(prediction, style=OUTCOME_STYLES.get(player.prediction or "", "white")),
            f"{player.stake:,.2f}",
            _format_time(player.joined_at),
            Text("WIN", style="bold green") if player.has_won else "",
        )
    return Panel(table, title="[bold]Players[/]", border_style="magenta", box=box.ROUNDED)


def render_room(view: RoomView, entries: List[Notification]):
    if view.is_loading:
        status, style = "Loading...", "yellow"
    elif view.error:
        status, style = "Stale data", "red"
    elif view.poller.stopped:
        status, style = "Finished", "dim"
    else:
        status, style = "Live", "green"

    players = view.snapshot.players if view.snapshot else []
    return Group(
        generate_header(f"Room {view.room_id}", view.game, status, style),
        generate_room_info(view),
        render_phase(view.phase, view),
        generate_players_table(players, view.game, view.user_id),
        generate_footer(entries),
    )
