import argparse
import logging
import sys
import time
from typing import Optional

from rich import box
from rich.align import Align
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table
from rich.text import Text
from rich.traceback import install

from . import __version__
from .api import RoomAPI
from .config import CONFIG_DIR, ClientConfig, load_config, save_config
from .errors import ApiError, AuthenticationError, BetValidationError
from .games import BIG_SMALL, GameVariant, get_game, list_games
from .lobby import LobbyView
from .navigation import LOBBY, LOGIN, MENU, ROOM, Navigator
from .notify import NotificationLog, NotificationQueue, configure_logging
from .room import RoomView
from .session import SessionStore
from .ui import render_lobby, render_room

install()

log = logging.getLogger(__name__)

console = Console()

REFRESH_PER_SECOND = 4


# ======== BANNER ========
def make_banner() -> Panel:
    width = console.size.width or 80

    wide_ascii = r"""
  ___            _ _    _   ___
 | _ \_ _ ___ __| (_)__| |_| _ \___  ___ _ __
 |  _/ '_/ -_) _` | / _|  _|   / _ \/ _ \ '  \
 |_| |_| \___\__,_|_\__|\__|_|_\___/\___/_|_|_|
    """

    art = Text()
    if width >= 60:
        for line in wide_ascii.strip("\n").split("\n"):
            art.append(line.rstrip()[: width - 10], style="bold bright_cyan")
            art.append("\n")
        panel_width = min(width - 4, 60)
    else:
        art.append(" PredictRoom ", style="bold bright_cyan")
        panel_width = max(30, width - 4)

    return Panel(
        Align.center(art),
        padding=(0, 2),
        subtitle=Text(f">> Big Small & Color Prediction  v{__version__}", style="bright_cyan"),
        subtitle_align="center",
        expand=False,
        width=panel_width,
        box=box.HEAVY,
        border_style="bright_cyan",
    )


def make_game_list() -> Panel:
    table = Table.grid(padding=(0, 1))
    table.add_column(justify="center")
    table.add_column(justify="left", ratio=1)
    for idx, game in enumerate(list_games(), start=1):
        title = Text.assemble((game.name, "bold bright_white"), "\n", (game.desc, "italic cyan"))
        table.add_row(Text(f" {idx} ", style="white"), title)
    table.add_row(Text(" a ", style="white"), Text("Account summary", style="bold bright_white"))
    table.add_row(Text(" l ", style="white"), Text("Log out", style="bold bright_white"))

    return Panel(
        Align.center(table),
        title=Text("=== GAME MENU ===", style="bold bright_cyan"),
        subtitle=Text("=== [0] Exit ===", style="bold bright_magenta"),
        padding=(1, 2),
        box=box.HEAVY,
        border_style="bright_cyan",
        width=min((console.size.width or 80) - 4, 70),
    )


class App:
    """Wires config, session, API and navigation for the terminal client"""

    def __init__(self, config: ClientConfig, session: SessionStore):
        self.config = config
        self.session = session
        self.navigator = Navigator(LOBBY, game=config.default_game)
        self.notifications = NotificationQueue()
        self.notification_log = NotificationLog()
        self.api = RoomAPI(config.api_base_url, session, timeout=config.request_timeout)
        self.session.set_logout_handler(lambda: self.navigator.go(LOGIN))

    # ------------------------------------------------------------------
    # screens
    # ------------------------------------------------------------------

    def login_screen(self) -> bool:
        console.print(Panel("Log in to continue", border_style="yellow", box=box.ROUNDED))
        email = Prompt.ask("Email")
        password = Prompt.ask("Password", password=True)
        try:
            user = self.api.login(email, password)
        except (ApiError, AuthenticationError) as e:
            console.print(Panel(f"Login failed: {e.message}", border_style="red"))
            return False
        console.print(f"[green]Welcome back, {user.name or user.email}![/green]")
        return True

    def account_screen(self):
        try:
            profile = self.api.fetch_profile()
            stats = self.api.fetch_mlm_stats()
            wallet = self.api.fetch_wallet()
        except AuthenticationError as e:
            self.notifications.error("Authentication error", e.message)
            self.session.on_unauthorized()
            return
        except ApiError as e:
            console.print(Panel(f"Could not load account: {e.message}", border_style="red"))
            return

        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="cyan")
        grid.add_column(style="bold")
        grid.add_row("Name", str(profile.get("name", "--")))
        grid.add_row("Email", str(profile.get("email", "--")))
        grid.add_row("Referral code", str(profile.get("referralCode") or stats["user"].get("referralCode", "--")))
        grid.add_row("MLM level", str(stats["user"].get("mlmLevel", "--")))
        earnings = stats["user"].get("mlmEarnings") or {}
        grid.add_row("MLM earnings", f"{float(earnings.get('total') or 0):.2f}")
        grid.add_row("Direct referrals", str(stats["statistics"].get("directReferrals", 0)))
        grid.add_row("Total downline", str(stats["statistics"].get("totalDownline", 0)))
        grid.add_row("Wallet", f"normal {wallet.normal:.2f} | benefit {wallet.benefit:.2f} | game {wallet.game:.2f}")
        console.print(Panel(grid, title="[bold]Account[/]", border_style="cyan", box=box.ROUNDED))
        Prompt.ask("Press Enter to go back", default="")

    def lobby_screen(self, game: GameVariant):
        lobby = LobbyView(self.api, game, self.session, self.navigator, self.notifications, self.config)
        lobby.start()
        try:
            while True:
                # Wait for the first load so the table is not empty on screen
                while lobby.is_loading:
                    time.sleep(0.1)
                if self.navigator.route != LOBBY:
                    return

                self.notification_log.absorb(self.notifications)
                console.clear()
                console.print(render_lobby(lobby, self.notification_log.snapshot()))
                command = Prompt.ask(
                    "[cyan]Enter[/] refresh | [cyan]b N[/] bet on room N | [cyan]w ID[/] watch room | [cyan]q[/] menu",
                    default="",
                ).strip()

                if command == "q":
                    self.navigator.go(MENU)
                    return
                if command.startswith("b"):
                    self._bet_dialog(lobby, command[1:].strip())
                elif command.startswith("w"):
                    room_id = command[1:].strip()
                    if room_id:
                        self.navigator.go(ROOM, game=game.key, room_id=room_id)
                else:
                    lobby.manual_refresh()
        finally:
            lobby.stop()

    def _bet_dialog(self, lobby: LobbyView, arg: str):
        rooms = lobby.snapshot()
        try:
            room = rooms[int(arg) - 1]
        except (ValueError, IndexError):
            self.notifications.warning("Pick a room", "Use b followed by the room number from the table.")
            return

        slip = lobby.open_bet(room)
        if slip is None:
            return

        console.print(Panel(
            f"Room {room.room_id} | entry {room.entry_fee:.2f} | x{room.multiplier:g}",
            title=f"[bold]{lobby.game.name} prediction[/]",
            border_style=lobby.game.theme["border"],
        ))
        try:
            if lobby.game is BIG_SMALL:
                number = IntPrompt.ask("Pick a number (1-5 small, 6-10 big)")
                slip.pick_number(number)
            else:
                slip.pick(Prompt.ask("Pick a color", choices=list(lobby.game.outcomes)))
        except BetValidationError as e:
            self.notifications.error(e.title, e.message)
            return
        slip.stake = Prompt.ask("Bet amount", default=f"{room.entry_fee:g}")

        if Confirm.ask(f"Confirm {slip.describe()} for {slip.stake}?", default=True):
            lobby.submit(slip)

    def room_screen(self, game: GameVariant, room_id: str):
        view = RoomView(self.api, game, room_id, self.session, self.navigator, self.notifications, self.config)
        view.start()
        try:
            while self.navigator.route == ROOM:
                try:
                    self._watch_room(view)
                except KeyboardInterrupt:
                    self._room_command(view)
        finally:
            view.close()

    def _watch_room(self, view: RoomView):
        with Live(render_room(view, []), console=console, refresh_per_second=REFRESH_PER_SECOND, screen=False) as live:
            while self.navigator.route == ROOM:
                self.notification_log.absorb(self.notifications)
                live.update(render_room(view, self.notification_log.snapshot()))
                time.sleep(1 / REFRESH_PER_SECOND)

    def _room_command(self, view: RoomView):
        """Ctrl+C pauses the dashboard: join this room, go back, or keep watching"""
        command = Prompt.ask(
            f"[cyan]j OPTION[/] join ({'/'.join(view.game.outcomes)}) | [cyan]l[/] lobby | [cyan]Enter[/] keep watching",
            default="",
        ).strip()
        if command == "l":
            console.print("[yellow]Left the room.[/]")
            self.navigator.go(LOBBY, game=view.game.key)
        elif command.startswith("j"):
            entry_fee = view.snapshot.room.entry_fee if view.snapshot else 0.0
            stake = Prompt.ask("Bet amount", default=f"{entry_fee:g}")
            view.join(command[1:].strip().lower(), stake=stake)

    # ------------------------------------------------------------------
    # main loop
    # ------------------------------------------------------------------

    def menu_screen(self) -> Optional[str]:
        console.clear()
        console.print(make_banner())
        console.print(make_game_list())
        games = list_games()
        choices = [str(i) for i in range(len(games) + 1)] + ["a", "l"]
        choice = Prompt.ask("Choose", choices=choices, default="1")
        if choice == "0":
            return None
        if choice == "a":
            self.account_screen()
            return MENU
        if choice == "l":
            self.session.logout()
            self.navigator.go(LOGIN)
            return LOGIN
        self.navigator.go(LOBBY, game=games[int(choice) - 1].key)
        return LOBBY

    def run(self, route: Optional[str] = None, **params):
        if not self.session.is_authenticated:
            self.navigator.go(LOGIN)
        else:
            self.navigator.go(route or MENU, **params)

        while True:
            self.navigator.take_pending()
            route, params = self.navigator.current

            if route == LOGIN:
                if not self.login_screen():
                    if not Confirm.ask("Try again?", default=True):
                        return
                    continue
                self.navigator.go(MENU)
            elif route == MENU:
                if self.menu_screen() is None:
                    console.print("[yellow]Bye.[/]")
                    return
            elif route == LOBBY:
                self.lobby_screen(get_game(params.get("game", self.config.default_game)))
            elif route == ROOM:
                self.room_screen(get_game(params.get("game", self.config.default_game)), params["room_id"])
            else:
                log.error("[NAV] Unknown route %s", route)
                self.navigator.go(MENU)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="predictroom", description="Terminal client for prediction-game rooms")
    parser.add_argument("--api", help="API base URL (overrides config)")
    parser.add_argument("--game", choices=[g.key for g in list_games()], help="Open this game's lobby directly")
    parser.add_argument("--room", help="Watch this room directly (needs --game)")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument("--save-config", action="store_true", help="Write the effective config and exit")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    # Terminal logging until the menus and dashboards take over the screen
    configure_logging(args.log_level or "INFO")
    config = load_config()
    if args.api:
        config.api_base_url = args.api
    if args.log_level:
        config.log_level = args.log_level

    if args.save_config:
        path = save_config(config)
        console.print(f"[green]Config written to {path}[/green]")
        return

    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    configure_logging(config.log_level, log_file=str(CONFIG_DIR / config.log_file))

    session = SessionStore().load()
    app = App(config, session)

    try:
        if args.game and args.room:
            app.run(ROOM, game=args.game, room_id=args.room)
        elif args.game:
            app.run(LOBBY, game=args.game)
        else:
            app.run()
    except KeyboardInterrupt:
        console.print("[yellow]Stopped by user.[/]")
        sys.exit(0)


if __name__ == "__main__":
    main()
