"""pinvault — command-line front end for the credential store.

Commands
--------
  generate   Generate random passwords and rate their strength
  add        Add a credential
  list       List credentials in a rich table (passwords masked)
  show       Reveal a credential's password, behind the PIN
  update     Update fields on an existing credential
  delete     Remove a credential
  pin-setup  Set the 4-digit PIN
  info       Show where data lives and what is stored
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import pyperclip
import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from . import __version__
from .backends import FileBackend
from .errors import PinVaultError, ValidationError
from .generator import classify_strength, generate as generate_password, make_config
from .models import DEFAULT_LENGTH, AccessDecision, CredentialRecord, Strength
from .pin import PIN_SLOT, PinGate
from .store import PASSWORDS_SLOT, CredentialStore

# ---------------------------------------------------------------------------
# App & consoles
# ---------------------------------------------------------------------------

_THEME = Theme(
    {
        "success": "bold green",
        "warning": "bold yellow",
        "danger": "bold red",
        "muted": "dim",
        "label": "cyan",
        "highlight": "bold white",
    }
)

console = Console(theme=_THEME)
err = Console(stderr=True, theme=_THEME)

app = typer.Typer(
    name="pinvault",
    help="[bold cyan]pinvault[/bold cyan] — local passwords behind a PIN.",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
)

_STRENGTH_STYLE = {
    Strength.WEAK: "danger",
    Strength.MEDIUM: "warning",
    Strength.STRONG: "success",
}

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _get_home() -> Path:
    env = os.environ.get("PINVAULT_HOME")
    if env:
        return Path(env)
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home()))
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / "pinvault"


def _backend() -> FileBackend:
    return FileBackend(_get_home())


def _store() -> CredentialStore:
    return CredentialStore(_backend())


def _gate() -> PinGate:
    return PinGate(_backend())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _fail(exc: PinVaultError) -> NoReturn:
    err.print(f"[danger]{escape(str(exc))}[/danger]")
    raise typer.Exit(1) from exc


def _copy(value: str, what: str = "Password") -> None:
    try:
        pyperclip.copy(value)
        console.print(f"[success]{what} copied to clipboard.[/success]")
    except pyperclip.PyperclipException:
        console.print("[warning]Clipboard unavailable.[/warning]")


def _find_one(store: CredentialStore, ref: str) -> CredentialRecord:
    """Return the unique record matching *ref* (id, account, id prefix, then partial account)."""
    records = store.get_all()

    for r in records:
        if r.id == ref:
            return r

    ref_l = ref.lower()
    exact = [r for r in records if r.account.lower() == ref_l]
    if len(exact) == 1:
        return exact[0]
    if len(exact) > 1:
        err.print(f"[warning]Multiple credentials named '{escape(ref)}' — use the id instead.[/warning]")
        for r in exact:
            err.print(f"  • {escape(r.account)} ({r.id[:8]})")
        raise typer.Exit(1)

    by_prefix = [r for r in records if r.id.startswith(ref)]
    if len(by_prefix) == 1:
        return by_prefix[0]

    partial = [r for r in records if ref_l in r.account.lower()]
    if len(partial) == 1:
        return partial[0]
    if len(partial) > 1:
        err.print(f"[warning]Multiple partial matches for '{escape(ref)}':[/warning]")
        for r in partial:
            err.print(f"  • {escape(r.account)} ({r.id[:8]})")
        raise typer.Exit(1)

    err.print(f"[danger]No credential found matching '[bold]{escape(ref)}[/bold]'.[/danger]")
    raise typer.Exit(1)


def _render_record(record: CredentialRecord, *, show_password: bool = False) -> None:
    body = Text()

    def row(label: str, value: str, style: str = "highlight") -> None:
        body.append(f"  {label:<12}", style="label")
        body.append(value + "\n", style=style)

    if record.username:
        row("Username", record.username)
    if record.email:
        row("Email", record.email)
    row("Password", record.password if show_password else "••••••••••••", style="bold green" if show_password else "muted")
    if record.notes:
        row("Notes", record.notes, style="italic")
    row("Created", record.created_at.strftime("%Y-%m-%d %H:%M UTC"), style="muted")
    row("ID", record.id, style="muted")

    console.print(
        Panel(body, title=f"[bold cyan]{escape(record.account)}[/bold cyan]", expand=False, border_style="cyan")
    )


def _render_table(records: list[CredentialRecord], title: str = "Credentials") -> None:
    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        show_lines=False,
        highlight=True,
        title_style="bold",
    )
    table.add_column("#", style="muted", justify="right", no_wrap=True)
    table.add_column("Account", style="bold white", min_width=16)
    table.add_column("Username", style="dim", min_width=14)
    table.add_column("Email", style="blue")
    table.add_column("Created", style="muted", no_wrap=True)
    table.add_column("ID", style="muted", no_wrap=True)

    for i, r in enumerate(records, 1):
        table.add_row(
            str(i),
            escape(r.account),
            escape(r.username or ""),
            escape(r.email or ""),
            r.created_at.strftime("%Y-%m-%d"),
            r.id[:8],
        )
    console.print(table)


def _ask_new_pin(gate: PinGate) -> None:
    console.print(
        Panel(
            "[bold]Set your PIN[/bold]\n"
            "[muted]Choose a 4-digit PIN. You will need it to view stored passwords.[/muted]",
            border_style="cyan",
            expand=False,
        )
    )
    pin = Prompt.ask("  Enter PIN", password=True, console=console)
    confirm = Prompt.ask("  Confirm PIN", password=True, console=console)
    try:
        gate.setup(pin, confirm)
    except PinVaultError as exc:
        _fail(exc)
    console.print("[success]PIN set.[/success]")


def _unlock(gate: PinGate) -> None:
    """Walk *gate* from whatever state it is in to unlocked, or exit."""
    decision = gate.request_access(_now())
    if decision is AccessDecision.NEEDS_SETUP:
        _ask_new_pin(gate)
        decision = gate.request_access(_now())
    if decision is AccessDecision.NEEDS_CHALLENGE:
        pin = Prompt.ask("PIN", password=True, console=console)
        try:
            gate.verify(pin, _now())
        except PinVaultError as exc:
            _fail(exc)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.callback()
def _main(
    home: Annotated[
        Optional[Path],
        typer.Option("--home", help="Directory holding the vault files.", show_default=False),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Show debug logging.")] = False,
) -> None:
    if home:
        os.environ["PINVAULT_HOME"] = str(home)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err, show_path=False)],
    )


@app.command()
def generate(
    length: Annotated[int, typer.Option("--length", "-l", help="Password length (4-32).")] = DEFAULT_LENGTH,
    no_upper: Annotated[bool, typer.Option("--no-upper", help="Exclude uppercase letters.")] = False,
    no_lower: Annotated[bool, typer.Option("--no-lower", help="Exclude lowercase letters.")] = False,
    no_digits: Annotated[bool, typer.Option("--no-digits", help="Exclude digits.")] = False,
    no_symbols: Annotated[bool, typer.Option("--no-symbols", help="Exclude symbols.")] = False,
    count: Annotated[int, typer.Option("--count", "-c", min=1, help="Number of passwords to generate.")] = 1,
    copy: Annotated[bool, typer.Option("--copy", help="Copy first password to clipboard.")] = False,
) -> None:
    """Generate one or more random passwords."""
    try:
        config = make_config(
            length=length,
            uppercase=not no_upper,
            lowercase=not no_lower,
            digits=not no_digits,
            symbols=not no_symbols,
        )
    except ValidationError as exc:
        _fail(exc)

    passwords = [generate_password(config) for _ in range(count)]

    if count == 1:
        strength = classify_strength(passwords[0], config)
        style = _STRENGTH_STYLE[strength]
        console.print(
            Panel(
                f"[bold green]{escape(passwords[0])}[/bold green]",
                title=f"[bold]Generated password ({length} chars)[/bold]",
                subtitle=f"[{style}]{strength.value}[/{style}]",
                border_style="green",
                expand=False,
            )
        )
    else:
        console.print(f"\n[bold]Generated {count} passwords ({length} chars each)[/bold]\n")
        for i, pw in enumerate(passwords, 1):
            strength = classify_strength(pw, config)
            style = _STRENGTH_STYLE[strength]
            console.print(
                f"  [muted]{i:>3}.[/muted]  [bold green]{escape(pw)}[/bold green]  [{style}]{strength.value}[/{style}]"
            )
        console.print()

    if copy:
        _copy(passwords[0], "First password")


@app.command()
def add(
    account: Annotated[str, typer.Argument(help="Account / service name.")],
    username: Annotated[Optional[str], typer.Option("--username", "-u", help="Username.")] = None,
    email: Annotated[Optional[str], typer.Option("--email", "-e", help="Email address.")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", "-n", help="Free-form notes.")] = None,
    generate: Annotated[bool, typer.Option("--generate", "-g", help="Auto-generate a password.")] = False,
    length: Annotated[int, typer.Option("--length", "-l", help="Generated password length.")] = DEFAULT_LENGTH,
) -> None:
    """Add a new credential."""
    store = _store()

    console.print(f"\n[bold cyan]Adding[/bold cyan] [bold]{escape(account)}[/bold]\n")

    if username is None:
        username = Prompt.ask("  Username [muted](blank to skip)[/muted]", default="", console=console) or None
    if email is None:
        email = Prompt.ask("  Email    [muted](blank to skip)[/muted]", default="", console=console) or None

    try:
        if generate:
            password = generate_password(make_config(length=length))
            console.print(f"  [muted]Generated:[/muted] [bold green]{escape(password)}[/bold green]")
        else:
            password = Prompt.ask("  Password", password=True, console=console)

        if notes is None:
            notes = Prompt.ask("  Notes    [muted](blank to skip)[/muted]", default="", console=console) or None

        records = store.add(account, password, username=username or None, email=email or None, notes=notes or None)
    except PinVaultError as exc:
        _fail(exc)

    console.print(
        f"\n[success]Credential '[bold]{escape(account)}[/bold]' saved.[/success] "
        f"[muted]({records[-1].id[:8]})[/muted]"
    )


@app.command("list")
def list_creds(
    search: Annotated[
        Optional[str], typer.Option("--search", "-s", help="Filter by account, username, email or notes.")
    ] = None,
) -> None:
    """List stored credentials; passwords are never shown here."""
    store = _store()
    records = store.search(search) if search else store.get_all()

    if not records:
        console.print("[muted]No credentials match your query.[/muted]" if search else "[muted]The vault is empty.[/muted]")
        return

    _render_table(records, title=f"Credentials ({len(records)} total)")


@app.command()
def show(
    ref: Annotated[str, typer.Argument(help="Credential id, id prefix or account name.")],
    copy: Annotated[bool, typer.Option("--copy", "-c", help="Copy password to clipboard.")] = False,
) -> None:
    """Reveal a credential, asking for the PIN first."""
    store = _store()
    record = _find_one(store, ref)
    _unlock(_gate())
    _render_record(record, show_password=True)
    if copy:
        _copy(record.password)


@app.command()
def update(
    ref: Annotated[str, typer.Argument(help="Credential id, id prefix or account name.")],
    account: Annotated[Optional[str], typer.Option("--account", help="Rename the credential.")] = None,
    username: Annotated[Optional[str], typer.Option("--username", "-u", help="New username (empty to clear).")] = None,
    email: Annotated[Optional[str], typer.Option("--email", "-e", help="New email (empty to clear).")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", "-n", help="New notes (empty to clear).")] = None,
    generate: Annotated[bool, typer.Option("--generate", "-g", help="Auto-generate a new password.")] = False,
    length: Annotated[int, typer.Option("--length", "-l", help="Generated password length.")] = DEFAULT_LENGTH,
) -> None:
    """Update an existing credential."""
    store = _store()
    record = _find_one(store, ref)

    changes: dict[str, Optional[str]] = {}
    if account is not None:
        changes["account"] = account
    if username is not None:
        changes["username"] = username or None
    if email is not None:
        changes["email"] = email or None
    if notes is not None:
        changes["notes"] = notes or None

    try:
        if generate:
            changes["password"] = generate_password(make_config(length=length))
            console.print(f"  [muted]New password:[/muted] [bold green]{escape(changes['password'])}[/bold green]")
        else:
            new_pw = Prompt.ask(
                "  New password [muted](blank to keep current)[/muted]",
                password=True,
                default="",
                console=console,
            )
            if new_pw:
                changes["password"] = new_pw

        if not changes:
            console.print("[muted]No changes made.[/muted]")
            return

        store.update(record.id, **changes)
    except PinVaultError as exc:
        _fail(exc)

    console.print(f"[success]Credential '[bold]{escape(changes.get('account') or record.account)}[/bold]' updated.[/success]")


@app.command()
def delete(
    ref: Annotated[str, typer.Argument(help="Credential id, id prefix or account name.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
) -> None:
    """Permanently delete a credential."""
    store = _store()
    record = _find_one(store, ref)

    if not yes:
        confirmed = Confirm.ask(
            f"  Delete '[bold]{escape(record.account)}[/bold]'? [muted]This cannot be undone.[/muted]",
            default=False,
            console=console,
        )
        if not confirmed:
            raise typer.Exit(0)

    try:
        store.delete(record.id)
    except PinVaultError as exc:
        _fail(exc)
    console.print(f"[danger]Credential '[bold]{escape(record.account)}[/bold]' deleted.[/danger]")


@app.command("pin-setup")
def pin_setup() -> None:
    """Set the PIN that guards password details."""
    gate = _gate()
    if gate.is_configured():
        overwrite = Confirm.ask(
            "[warning]A PIN is already set. Replace it?[/warning]",
            default=False,
            console=console,
        )
        if not overwrite:
            raise typer.Exit(0)
    _ask_new_pin(gate)


@app.command()
def info() -> None:
    """Show where data lives and what is stored."""
    backend = _backend()
    store = CredentialStore(backend)
    gate = PinGate(backend)

    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Version", __version__)
    table.add_row("Data directory", str(backend.directory))
    table.add_row("Credentials file", str(backend.path_for(PASSWORDS_SLOT)))
    table.add_row("PIN file", str(backend.path_for(PIN_SLOT)))
    table.add_row("Credentials", str(len(store.get_all())))
    table.add_row("PIN set", "[green]yes[/green]" if gate.is_configured() else "[red]no[/red]")

    console.print(Panel(table, title="[bold cyan]pinvault info[/bold cyan]", border_style="cyan", expand=False))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    app()


if __name__ == "__main__":
    main()
