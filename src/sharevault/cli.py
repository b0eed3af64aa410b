"""Command line interface: ``sharevault encrypt|decrypt|split|combine``."""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import Iterator

import click
from tqdm import tqdm

from . import encoding, vault
from . import policy as policy_module
from .cipher import ENCRYPTED_SUFFIX, OperationCancelled
from .errors import ShareVaultError
from .field import NAMED_FIELDS, field_for
from .reconstruct import reconstruct
from .resources import ResourceError
from .shares import generate
from .validation import (
    collect_issues,
    validate_container,
    validate_input_file,
    validate_output_path,
    validate_secret,
    validate_share_counts,
    validate_share_file,
    validate_shares_dir,
)


def _fail_validation(issues) -> None:
    for issue in issues:
        click.echo(f"{issue.field}: {issue.message}", err=True)
    sys.exit(2)


@contextmanager
def _progress(label: str, enabled: bool) -> Iterator:
    if not enabled:
        yield None
        return
    bar = tqdm(total=100, desc=label, unit="%", leave=False)
    state = {"last": 0}

    def _update(fraction: float) -> None:
        current = int(fraction * 100)
        if current > state["last"]:
            bar.update(current - state["last"])
            state["last"] = current

    try:
        yield _update
    finally:
        bar.close()


@contextmanager
def _library_errors() -> Iterator[None]:
    try:
        yield
    except (ShareVaultError, ResourceError, OperationCancelled, OSError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(package_name="sharevault")
def cli(verbose: bool) -> None:
    """Threshold secret sharing for file keys."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command("encrypt")
@click.argument("input_path", type=click.Path(dir_okay=False))
@click.option("-o", "--output", "output_path", help="Container path (default: INPUT.aes).")
@click.option("-n", "--shares", type=int, default=None, help="Number of shares to create.")
@click.option("-t", "--threshold", type=int, default=None, help="Shares needed to decrypt.")
@click.option("--shares-dir", default=None, help="Where to write share files.")
@click.option("--progress/--no-progress", default=True)
def encrypt_cmd(input_path, output_path, shares, threshold, shares_dir, progress) -> None:
    """Encrypt INPUT_PATH and split its key into share files."""
    current = policy_module.policy
    shares = current.default_shares if shares is None else shares
    threshold = current.default_threshold if threshold is None else threshold
    output_path = output_path or input_path + ENCRYPTED_SUFFIX
    shares_dir = shares_dir or os.path.dirname(os.path.abspath(output_path))

    issues = collect_issues(
        validate_input_file(input_path),
        validate_output_path(output_path, source_path=input_path),
        validate_shares_dir(shares_dir),
        validate_share_counts(shares, threshold),
    )
    if issues:
        _fail_validation(issues)

    with _library_errors(), _progress("encrypt", progress) as progress_cb:
        report = vault.protect_file(
            input_path,
            output_path,
            shares_dir,
            shares=shares,
            threshold=threshold,
            progress_cb=progress_cb,
        )
    click.echo(f"Container: {report.container}")
    click.echo(f"Any {report.threshold} of {report.shares} shares decrypt it:")
    for path in report.share_paths:
        click.echo(f"  {path}")


@cli.command("decrypt")
@click.argument("input_path", type=click.Path(dir_okay=False))
@click.option(
    "-s", "--share", "share_paths", multiple=True, required=True, type=click.Path(dir_okay=False),
    help="Share file; repeat for each share.",
)
@click.option("-o", "--output", "output_path", help="Output path (default: INPUT without .aes).")
@click.option("--progress/--no-progress", default=True)
def decrypt_cmd(input_path, share_paths, output_path, progress) -> None:
    """Rebuild the key from share files and decrypt INPUT_PATH."""
    if not output_path:
        if input_path.endswith(ENCRYPTED_SUFFIX):
            output_path = input_path[: -len(ENCRYPTED_SUFFIX)]
        else:
            output_path = input_path + ".out"

    issues = collect_issues(
        validate_container(input_path),
        validate_output_path(output_path, source_path=input_path),
        *(validate_share_file(p) for p in share_paths),
    )
    if issues:
        _fail_validation(issues)

    with _library_errors(), _progress("decrypt", progress) as progress_cb:
        size = vault.recover_file(input_path, output_path, share_paths, progress_cb=progress_cb)
    click.echo(f"Decrypted {size} bytes into {output_path}")


_prime_option = click.option(
    "--prime",
    type=click.Choice(sorted(NAMED_FIELDS, key=int)),
    default="521",
    show_default=True,
    help="Mersenne prime exponent of the field.",
)


@cli.command("split")
@click.option("--secret", type=int, required=True, help="Secret as a decimal integer.")
@click.option("-n", "--shares", type=int, required=True)
@click.option("-t", "--threshold", type=int, required=True)
@_prime_option
def split_cmd(secret: int, shares: int, threshold: int, prime: str) -> None:
    """Print SHARES shares of SECRET as '(x, y)' lines."""
    field = field_for(prime)
    issues = collect_issues(
        validate_share_counts(shares, threshold),
        validate_secret(secret, field),
    )
    if issues:
        _fail_validation(issues)
    with _library_errors():
        share_set = generate(secret, shares, threshold, field=field)
    for share in share_set:
        click.echo(encoding.format_share(share))


@cli.command("combine")
@click.argument("shares", nargs=-1, required=True)
@click.option("-t", "--threshold", type=int, required=True)
@_prime_option
def combine_cmd(shares, threshold: int, prime: str) -> None:
    """Recover the secret from '(x, y)' SHARES."""
    field = field_for(prime)
    with _library_errors():
        points = [encoding.parse_share(text) for text in shares]
        secret = reconstruct(points, threshold, field=field)
    click.echo(secret)


def main() -> None:
    cli(prog_name="sharevault")


if __name__ == "__main__":
    main()
