import json
from pathlib import Path
from typing import Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from mfa import __version__
from mfa.config import MFAConfig
from mfa.core.logging_config import configure_logging
from mfa.otp.application.dto import CredentialCreateInput, CredentialImportPayload, CredentialUpdateInput
from mfa.otp.application.manager import CredentialManager
from mfa.otp.application.settings import load_settings, reset_settings, unlock, update_setting
from mfa.otp.application.use_cases import (
    CredentialCreateUseCase,
    CredentialDeleteUseCase,
    CredentialExportUseCase,
    CredentialFromURIUseCase,
    CredentialImportUseCase,
    CredentialListUseCase,
    CredentialUpdateUseCase,
    items_from_export,
)
from mfa.otp.domain.entities import CredentialRecord
from mfa.otp.domain.exceptions import CorruptOrTamperedError, CredentialNotFoundError, OTPError, StorageError
from mfa.otp.domain.parser import format_otpauth_uri
from mfa.otp.infrastructure.preferences import PreferenceStore, SqlPreferenceStore
from mfa.otp.infrastructure.store import EncryptedCredentialStore
from mfa.otp.infrastructure.vault import KeyringVault, KeyVault


console = Console()
app = typer.Typer(
    name="mfa",
    help="MFA authenticator: one-time passcodes from an encrypted credential store",
    no_args_is_help=True,
    add_completion=False,
)

# sub-app: config
config_app = typer.Typer(name="config", help="Show and validate configuration")
app.add_typer(config_app, name="config")

# sub-app: settings
settings_app = typer.Typer(name="settings", help="Show and change app settings")
app.add_typer(settings_app, name="settings")


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=lambda v: (_print_version() if v else None),
        is_eager=True,
        help="Show version and exit.",
    )
):
    return


def _print_version() -> None:
    console.print(f"[bold]mfa[/] version {__version__}")
    raise typer.Exit(code=0)


# ---------------------------------------------------------------------------
# wiring


def build_backends(cfg: MFAConfig) -> Tuple[PreferenceStore, KeyVault]:
    """Return the preference store and key vault for *cfg*."""
    return SqlPreferenceStore.from_url(cfg.db_url), KeyringVault()


def _load_config() -> MFAConfig:
    cfg = MFAConfig.from_env()
    _, errs = cfg.validate()
    if errs:
        console.print("[red]Configuration error[/]: " + "; ".join(errs))
        raise typer.Exit(1)
    configure_logging(cfg.logging_level)
    return cfg


def _open_manager() -> CredentialManager:
    cfg = _load_config()
    try:
        preferences, vault = build_backends(cfg)
        settings = load_settings(preferences)
    except StorageError as exc:
        console.print(f"[red]Storage error[/]: {exc}")
        raise typer.Exit(1)
    if not unlock(settings, lambda: typer.confirm("Unlock credentials?")):
        console.print("[red]Locked[/]")
        raise typer.Exit(1)

    store = EncryptedCredentialStore(
        preferences,
        vault,
        blob_key=cfg.blob_key,
        service=cfg.vault_service,
        account=cfg.vault_account,
    )
    try:
        return CredentialManager.open(store)
    except CorruptOrTamperedError as exc:
        console.print(f"[red]Stored credentials are corrupt or were tampered with[/]: {exc}")
        raise typer.Exit(2)
    except StorageError as exc:
        console.print(f"[red]Storage error[/]: {exc}")
        raise typer.Exit(1)


def _resolve(manager: CredentialManager, ident: str) -> CredentialRecord:
    """Find a record by full id or unique id prefix."""
    if ident in manager.collection:
        return manager.get(ident)
    matches = [r for r in manager.records if r.id.startswith(ident)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise CredentialNotFoundError(ident)
    console.print(f"[red]Ambiguous id prefix[/]: {ident}")
    raise typer.Exit(1)


def _fail(exc: OTPError) -> None:
    field = getattr(exc, "field", None)
    suffix = f" (field: {field})" if field else ""
    console.print(f"[red]ERROR[/] {exc}{suffix}")
    raise typer.Exit(1)


def _label(record: CredentialRecord) -> str:
    return f"{record.issuer}:{record.name}" if record.issuer else record.name


# ---------------------------------------------------------------------------
# credential commands


@app.command("list", help="List credentials with their current time-based codes")
def list_() -> None:
    manager = _open_manager()
    table = Table(title="Credentials")
    table.add_column("ID", style="dim")
    table.add_column("Account", style="bold")
    table.add_column("Kind")
    table.add_column("Code")
    table.add_column("Remaining")
    for record, preview in CredentialListUseCase(manager).execute():
        table.add_row(
            record.id[:8],
            _label(record),
            record.kind.value,
            preview.otp or "(run `mfa code`)",
            f"{preview.remaining_seconds}s" if preview.remaining_seconds is not None else f"counter {record.counter}",
        )
    console.print(table)


@app.command(help="Add a credential from form fields")
def add(
    name: str = typer.Option(..., "--name", help="Account name"),
    issuer: str = typer.Option(..., "--issuer", help="Service provider"),
    secret: str = typer.Option(..., "--secret", prompt=True, hide_input=True, help="Base32 secret"),
    algorithm: str = typer.Option("SHA1", "--algorithm", help="SHA1, SHA256 or SHA512"),
    kind: str = typer.Option("totp", "--kind", help="totp or hotp"),
    digits: int = typer.Option(6, "--digits", help="6, 7 or 8"),
    period: int = typer.Option(30, "--period", help="TOTP period in seconds"),
    counter: int = typer.Option(0, "--counter", help="Initial HOTP counter"),
) -> None:
    manager = _open_manager()
    payload = CredentialCreateInput(
        name=name,
        issuer=issuer,
        secret=secret,
        algorithm=algorithm,
        kind=kind,
        digits=digits,
        period=period,
        counter=counter,
    )
    try:
        record = CredentialCreateUseCase(manager).execute(payload, select=True)
    except OTPError as exc:
        _fail(exc)
    console.print(f"[green]Added[/] {_label(record)} ({record.id})")


@app.command("add-uri", help="Add a credential from an otpauth:// URI")
def add_uri(uri: str = typer.Argument(..., help="otpauth:// provisioning URI")) -> None:
    manager = _open_manager()
    try:
        record = CredentialFromURIUseCase(manager).execute(uri)
    except OTPError as exc:
        _fail(exc)
    console.print(f"[green]Added[/] {_label(record)} ({record.id})")


@app.command(help="Show the current code (advances HOTP counters)")
def code(ident: str = typer.Argument(..., help="Credential id or id prefix")) -> None:
    manager = _open_manager()
    try:
        record = _resolve(manager, ident)
        otp = manager.current_code(record.id)
    except OTPError as exc:
        _fail(exc)
    if record.is_counter_based:
        console.print(f"{otp}  (next counter {manager.get(record.id).counter})")
    else:
        console.print(f"{otp}  (valid ~{record.seconds_remaining()}s)")


@app.command(help="Edit a credential; the HOTP counter is kept unless --counter is given")
def edit(
    ident: str = typer.Argument(..., help="Credential id or id prefix"),
    name: Optional[str] = typer.Option(None, "--name"),
    issuer: Optional[str] = typer.Option(None, "--issuer"),
    secret: Optional[str] = typer.Option(None, "--secret"),
    algorithm: Optional[str] = typer.Option(None, "--algorithm"),
    kind: Optional[str] = typer.Option(None, "--kind"),
    digits: Optional[int] = typer.Option(None, "--digits"),
    period: Optional[int] = typer.Option(None, "--period"),
    counter: Optional[int] = typer.Option(None, "--counter", help="Resynchronize the HOTP counter"),
) -> None:
    manager = _open_manager()
    try:
        record = _resolve(manager, ident)
        payload = CredentialUpdateInput(
            id=record.id,
            name=name if name is not None else record.name,
            issuer=issuer if issuer is not None else record.issuer,
            algorithm=algorithm or record.algorithm.value,
            kind=kind or record.kind.value,
            digits=digits if digits is not None else record.digits,
            period=period if period is not None else record.period,
            secret=secret,
            counter=counter,
            icon_name=record.icon_name,
        )
        updated = CredentialUpdateUseCase(manager).execute(payload)
    except OTPError as exc:
        _fail(exc)
    console.print(f"[green]Updated[/] {_label(updated)}")


@app.command(help="Remove a credential")
def remove(
    ident: str = typer.Argument(..., help="Credential id or id prefix"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    manager = _open_manager()
    try:
        record = _resolve(manager, ident)
        if not yes and not typer.confirm(f"Remove {_label(record)}?"):
            raise typer.Exit(1)
        CredentialDeleteUseCase(manager).execute(record.id)
    except OTPError as exc:
        _fail(exc)
    console.print(f"[green]Removed[/] {_label(record)}")


@app.command(help="Print the otpauth:// URI of a credential")
def uri(ident: str = typer.Argument(..., help="Credential id or id prefix")) -> None:
    manager = _open_manager()
    try:
        record = _resolve(manager, ident)
    except OTPError as exc:
        _fail(exc)
    console.print(format_otpauth_uri(record), soft_wrap=True)


@app.command(help="Print all credentials as JSON (contains secrets in clear text)")
def export() -> None:
    manager = _open_manager()
    console.print_json(data=CredentialExportUseCase(manager).execute())


@app.command("import", help="Import credentials from an export JSON file")
def import_(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file produced by `mfa export`"),
    force: bool = typer.Option(False, "--force", help="Overwrite credentials with the same name and issuer"),
) -> None:
    manager = _open_manager()
    try:
        entries = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        console.print(f"[red]ERROR[/] {path} is not valid JSON: {exc}")
        raise typer.Exit(1)
    if not isinstance(entries, list):
        console.print("[red]ERROR[/] export file must contain a JSON list")
        raise typer.Exit(1)
    try:
        result = CredentialImportUseCase(manager).execute(
            CredentialImportPayload(items=items_from_export(entries), force=force)
        )
    except OTPError as exc:
        _fail(exc)
    if result["conflicts"] and not result["imported"]:
        for conflict in result["conflicts"]:
            console.print(f"[yellow]CONFLICT[/] {conflict['issuer']}:{conflict['name']} ({conflict['existing_id']})")
        console.print("Nothing imported; re-run with --force to overwrite")
        raise typer.Exit(1)
    console.print(f"[green]Imported[/] {len(result['imported'])} credential(s)")


# ---------------------------------------------------------------------------
# config subcommands


@config_app.command(
    "show",
    help="Display settings loaded from environment variables (sensitive values masked)",
)
def config_show() -> None:
    cfg = MFAConfig.from_env()
    table = Table(title="MFA Config (masked)")
    table.add_column("Key", style="bold")
    table.add_column("Value")

    for k, v in cfg.masked().items():
        table.add_row(k, str(v))
    console.print(table)


@config_app.command("check", help="Validate settings and show errors/warnings")
def config_check() -> None:
    warns, errs = MFAConfig.from_env().validate()
    if warns:
        console.print("[yellow]WARN[/] " + " | ".join(warns))
    if errs:
        console.print("[red]ERROR[/] " + " | ".join(errs))
        raise typer.Exit(code=1)
    console.print("[green]OK[/] Configuration is valid")


# ---------------------------------------------------------------------------
# settings subcommands


def _open_preferences() -> PreferenceStore:
    cfg = _load_config()
    try:
        preferences, _ = build_backends(cfg)
    except StorageError as exc:
        console.print(f"[red]Storage error[/]: {exc}")
        raise typer.Exit(1)
    return preferences


@settings_app.command("show", help="Show app settings")
def settings_show() -> None:
    settings = load_settings(_open_preferences())
    table = Table(title="App Settings")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for name in settings.__dataclass_fields__:
        table.add_row(name, str(getattr(settings, name)))
    console.print(table)


@settings_app.command("set", help="Change one app setting")
def settings_set(
    name: str = typer.Argument(..., help="Setting name, e.g. copy_timeout"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    try:
        update_setting(_open_preferences(), name, value)
    except KeyError:
        console.print(f"[red]ERROR[/] unknown setting {name}")
        raise typer.Exit(1)
    except (TypeError, ValueError) as exc:
        console.print(f"[red]ERROR[/] {exc}")
        raise typer.Exit(1)
    console.print(f"[green]OK[/] {name} = {value}")


@settings_app.command("reset", help="Restore default app settings")
def settings_reset() -> None:
    reset_settings(_open_preferences())
    console.print("[green]OK[/] Settings restored to defaults")
