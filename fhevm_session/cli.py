"""
Command-line interface for the fhEVM session toolkit.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import click

from fhevm_session.client import signing
from fhevm_session.client.client import FhevmClient
from fhevm_session.client.wallet import LocalSigner
from fhevm_session.common.config import Config
from fhevm_session.common.engine import LocalEngineLoader
from fhevm_session.common.exceptions import FhevmError
from fhevm_session.common.models import DataKind
from fhevm_session.server import start_server
from fhevm_session.server.keygen import KeyGenerator

KIND_CHOICES = [kind.value for kind in DataKind]


def _local_client(keys_dir: str | None) -> FhevmClient:
    config = Config()
    key_path = Path(keys_dir) / "engine.key" if keys_dir else config.ENGINE_KEY_PATH
    return FhevmClient(engine_loader=LocalEngineLoader(key_path=key_path))


def _cli_value(value: str, kind: str) -> str | bool:
    if kind == DataKind.BOOL.value and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


@click.group()
def cli() -> None:
    """fhEVM session toolkit CLI"""


@cli.command()
@click.option(
    "--keys-dir",
    default=None,
    help="Directory to save the engine key (default: FHEVM_KEYS_DIR or ./fhevm_session/keys)",
)
@click.option("--force", is_flag=True, help="Overwrite an existing engine key")
def keygen(keys_dir: str | None, force: bool) -> None:  # noqa: FBT001
    """Generate the local engine key"""
    generator = KeyGenerator(Path(keys_dir) if keys_dir else None)
    try:
        path = generator.generate_keys(overwrite=force)
    except FileExistsError as e:
        msg = f"{e}. Use --force to replace it."
        raise click.ClickException(msg) from e
    click.echo(f"Engine key saved to {path}")


@cli.command()
@click.option(
    "--keys-dir",
    default=None,
    help="Directory to load keys from (default: FHEVM_KEYS_DIR or ./fhevm_session/keys)",
)
@click.option(
    "--host",
    default=None,
    help="Host to bind server to (default: from FHEVM_SERVER_HOST env or 127.0.0.1)",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Port to bind server to (default: from FHEVM_SERVER_PORT env or 8000)",
)
def serve(keys_dir: str | None, host: str | None, port: int | None) -> None:
    """Start the API server"""
    # Set environment variables before building the config
    if keys_dir:
        os.environ["FHEVM_KEYS_DIR"] = keys_dir
    start_server(Config(), host=host, port=port)


@cli.command()
@click.argument("value")
@click.option(
    "--kind",
    type=click.Choice(KIND_CHOICES),
    default=DataKind.UINT32.value,
    show_default=True,
    help="Encrypted data type",
)
@click.option("--keys-dir", default=None, help="Directory holding engine.key")
def encrypt(value: str, kind: str, keys_dir: str | None) -> None:
    """Encrypt VALUE with the local engine"""
    client = _local_client(keys_dir)
    try:
        record = asyncio.run(client.encrypt(_cli_value(value, kind), kind))
    except FhevmError as e:
        raise click.ClickException(str(e)) from e
    click.echo(record.model_dump_json(indent=2))


@cli.command()
@click.argument("handle")
@click.option("--keys-dir", default=None, help="Directory holding engine.key")
def decrypt(handle: str, keys_dir: str | None) -> None:
    """Publicly decrypt HANDLE with the local engine"""
    client = _local_client(keys_dir)
    try:
        result = asyncio.run(client.public_decrypt(handle))
    except FhevmError as e:
        raise click.ClickException(str(e)) from e
    if not result.success:
        raise click.ClickException(f"Decryption failed: {result.error}")
    click.echo(json.dumps(result.value))


@cli.command()
@click.argument("handle")
@click.option("--contract", required=True, help="Contract address bound in the domain")
@click.option(
    "--private-key",
    envvar="FHEVM_PRIVATE_KEY",
    required=True,
    help="Signer private key (default: FHEVM_PRIVATE_KEY env)",
)
@click.option("--chain-id", type=int, default=None, help="Chain id (default: FHEVM_CHAIN_ID)")
def sign(handle: str, contract: str, private_key: str, chain_id: int | None) -> None:
    """Sign a decryption authorization for HANDLE"""
    signer = LocalSigner.from_key(private_key)
    try:
        domain = signing.build_domain(chain_id or Config().CHAIN_ID, contract)
        result = asyncio.run(signing.sign(signer, domain, handle, signer.address))
    except FhevmError as e:
        raise click.ClickException(str(e)) from e
    click.echo(result.model_dump_json(indent=2))


@cli.command()
@click.argument("signature")
@click.argument("handle")
@click.option("--contract", required=True, help="Contract address bound in the domain")
@click.option("--user", required=True, help="Address expected to have signed")
@click.option("--chain-id", type=int, default=None, help="Chain id (default: FHEVM_CHAIN_ID)")
def verify(
    signature: str, handle: str, contract: str, user: str, chain_id: int | None
) -> None:
    """Check that SIGNATURE authorizes USER to decrypt HANDLE"""
    domain = signing.build_domain(chain_id or Config().CHAIN_ID, contract)
    if not signing.verify(signature, domain, handle, user, user):
        raise click.ClickException("Signature is not valid")
    click.echo("Signature is valid")


if __name__ == "__main__":
    cli()
