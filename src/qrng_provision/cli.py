"""Command-line interface for the quantum entropy provisioning tool."""

import secrets
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from .auth import AuthProtocol, AuthRequest
from .config import ProvisioningConfig, generate_default_config, load_config
from .errors import ProvisioningError
from .log import setup_logging
from .providers import check_pqc_availability
from .service import QuantumEntropyService

console = Console()


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    sys.exit(1)


def _build_service(ctx: click.Context, seed_a: Optional[str], seed_b: Optional[str]) -> QuantumEntropyService:
    config: ProvisioningConfig = ctx.obj["config"]
    if seed_a or seed_b:
        entropy = config.entropy.model_copy(
            update={
                "seed_a_path": seed_a or config.entropy.seed_a_path,
                "seed_b_path": seed_b or config.entropy.seed_b_path,
            }
        )
        config = config.model_copy(update={"entropy": entropy})
    try:
        return QuantumEntropyService.from_config(config)
    except ProvisioningError as e:
        _fail(str(e))


seed_options = [
    click.option("--seed-a", "-a", type=click.Path(exists=True), help="First quantum seed file"),
    click.option("--seed-b", "-b", type=click.Path(exists=True), help="Second quantum seed file"),
]


def with_seed_options(func):
    for option in reversed(seed_options):
        func = option(func)
    return func


@click.group()
@click.version_option(version="0.1.0", prog_name="qrng-provision")
@click.option("--config", "-c", type=click.Path(exists=True), help="Configuration file path")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """Quantum entropy provisioning tool.

    Provision post-quantum device credentials and deliver quantum-seeded
    entropy to edge devices.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    if config:
        try:
            ctx.obj["config"] = load_config(Path(config))
        except (ValueError, yaml.YAMLError) as e:
            _fail(f"Invalid configuration {config}: {e}")
    else:
        ctx.obj["config"] = ProvisioningConfig()

    log_config = ctx.obj["config"].logging
    setup_logging("DEBUG" if verbose else log_config.level, log_config.rich_tracebacks)


@main.command()
@click.option("--output", "-o", type=click.Path(), required=True, help="Output file path")
@click.option("--format", "fmt", type=click.Choice(["yaml", "json"]), default="yaml", help="Output format")
def init_config(output: str, fmt: str) -> None:
    """Generate a default configuration file."""
    output_path = Path(output)
    with open(output_path, "w") as f:
        f.write(generate_default_config(fmt))

    console.print(f"[bold green]✓[/bold green] Configuration file created at {output_path}")


@main.command()
def check() -> None:
    """Show which post-quantum backends are available."""
    availability = check_pqc_availability()

    table = Table(title="PQC Backends")
    table.add_column("Component", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("liboqs", "yes" if availability["liboqs"] else "no")
    table.add_row("kyber-py", "yes" if availability["kyber_py"] else "no")
    table.add_row("dilithium-py", "yes" if availability["dilithium_py"] else "no")
    table.add_row("Default backend", availability["default_backend"])
    table.add_row("KEM", ", ".join(availability["kem_algorithms"]))
    table.add_row("Signature", ", ".join(availability["signature_algorithms"]))
    console.print(table)


@main.command()
@with_seed_options
@click.pass_context
def seed_info(ctx: click.Context, seed_a: Optional[str], seed_b: Optional[str]) -> None:
    """Show information about the loaded quantum seeds."""
    service = _build_service(ctx, seed_a, seed_b)
    info = service.engine.seed_info()

    table = Table(title="Quantum Seed Info")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Seed A", f"{info['seed_a_size']} bytes")
    table.add_row("Seed B", f"{info['seed_b_size']} bytes")
    table.add_row("Combined entropy", f"{info['combiner']} hash")
    table.add_row("Generator", info["generator"])
    console.print(table)


@main.command()
@click.option("--device-id", "-d", required=True, help="Device identifier")
@click.option("--size", "-s", type=click.IntRange(min=1), default=None, help="Entropy size in bytes (max 32)")
@with_seed_options
@click.pass_context
def entropy(
    ctx: click.Context,
    device_id: str,
    size: Optional[int],
    seed_a: Optional[str],
    seed_b: Optional[str],
) -> None:
    """Derive quantum entropy for a device and print it as hex."""
    service = _build_service(ctx, seed_a, seed_b)
    device_entropy = service.generate_entropy_for_device(device_id, size)
    click.echo(device_entropy.hex())


@main.command()
@click.option("--device-id", "-d", required=True, help="Device identifier")
@with_seed_options
@click.pass_context
def provision(
    ctx: click.Context,
    device_id: str,
    seed_a: Optional[str],
    seed_b: Optional[str],
) -> None:
    """Provision quantum-seeded PQC credentials for a device.

    Only public-key fingerprints are printed; no secret material is written.
    """
    verbose: bool = ctx.obj["verbose"]
    service = _build_service(ctx, seed_a, seed_b)

    console.print(f"[bold blue]Provisioning device {device_id}[/bold blue]")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Generating ML-KEM and ML-DSA keypairs...", total=1)
        try:
            credentials = service.provision_device(device_id)
        except ProvisioningError as e:
            _fail(str(e))
        progress.update(task, completed=1)

    hashes = credentials.public_key_hash()
    table = Table(title="Device Credentials")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Device ID", device_id)
    table.add_row("KEM public key", f"{len(credentials.kem_public_key)} bytes")
    table.add_row("KEM fingerprint", hashes["kem"][:32] + "...")
    table.add_row("Signature public key", f"{len(credentials.sig_public_key)} bytes")
    table.add_row("Signature fingerprint", hashes["signature"][:32] + "...")
    if verbose:
        for key, value in service.factory.security_info().items():
            table.add_row(key, str(value))
    console.print(table)

    console.print("[bold green]✓[/bold green] Device provisioned")


@main.command()
@click.option("--device-id", "-d", default="selftest-device", help="Device identifier")
@with_seed_options
@click.pass_context
def selftest(
    ctx: click.Context,
    device_id: str,
    seed_a: Optional[str],
    seed_b: Optional[str],
) -> None:
    """Run entropy delivery and authentication round trips."""
    service = _build_service(ctx, seed_a, seed_b)
    auth = AuthProtocol(service.factory.signature)
    results = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Provisioning test device...", total=1)
        credentials = service.provision_device(device_id)
        progress.update(task, completed=1)

        task = progress.add_task("Delivering encrypted entropy...", total=1)
        expected = service.generate_entropy_for_device(device_id)
        encrypted = service.deliver_entropy(device_id, credentials.kem_public_key)
        try:
            decrypted = service.envelope.decrypt(encrypted, credentials.kem_secret_key)
            results.append(("Entropy delivery", decrypted == expected, f"{len(decrypted)} bytes"))
        except ProvisioningError as e:
            results.append(("Entropy delivery", False, str(e)))
        progress.update(task, completed=1)

        task = progress.add_task("Authenticating device...", total=1)
        request = auth.build_request(device_id, secrets.token_bytes(16), credentials.sig_secret_key)
        valid = auth.verify_request(request, credentials.sig_public_key)
        results.append(("Auth round trip", valid, f"{len(request.signature)}-byte signature"))

        forged = AuthRequest(
            device_id=device_id + "-forged", nonce=request.nonce, signature=request.signature
        )
        rejected = not auth.verify_request(forged, credentials.sig_public_key)
        results.append(("Forged request rejected", rejected, "device_id tampered"))
        progress.update(task, completed=1)

    table = Table(title="Self-test Results")
    table.add_column("Check", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")
    for name, passed, details in results:
        table.add_row(name, "✓ PASS" if passed else "✗ FAIL", details)
    console.print(table)

    if all(passed for _, passed, _ in results):
        console.print("[bold green]✓[/bold green] All self-tests passed")
        sys.exit(0)
    else:
        console.print("[bold red]✗[/bold red] Self-test failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
