"""S3D Toolkit CLI."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .logging_utils import set_level


def _display_name(name: str) -> str:
    return name.rstrip("\x00")


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """S3D Toolkit - Inspect and extract PFS (.s3d) game archives.

    \b
    Stage 1: Header and directory parsing
    Stage 2: Filename table decoding
    Stage 3: Entry extraction (raw or inflated)

    The log level can also be set with the S3D_TOOLKIT_LOG environment
    variable (DEBUG, INFO, WARNING, ...).
    """
    if verbose:
        set_level(logging.DEBUG)


@main.command("list")
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def list_cmd(archive: Path):
    """List files in a PFS archive with their offsets and sizes."""
    from .pfs import PFSArchive

    try:
        with PFSArchive(archive) as reader:
            click.echo(f"Files in archive ({len(reader)}):")
            for name, entry in reader.entries.items():
                click.echo(
                    f"  {_display_name(name):<40} "
                    f"offset=0x{entry.payload_offset:08X} size={entry.payload_size}"
                )

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def info(archive: Path):
    """Show header and directory details of a PFS archive."""
    from .pfs import PFSArchive

    try:
        with PFSArchive(archive) as reader:
            header = reader.header
            table = reader.directory.filename_entry

            click.echo(f"Archive:          {archive}")
            click.echo(f"Magic:            {header.magic.decode('ascii', errors='replace')!r}")
            click.echo(f"Version:          0x{header.format_version:X}")
            click.echo(f"Directory offset: 0x{header.directory_offset:08X}")
            click.echo(f"Directory slots:  {len(reader.directory)}")
            click.echo(f"Named entries:    {len(reader)}")
            click.echo(
                f"Filename table:   offset=0x{table.payload_offset:08X} "
                f"size={table.payload_size}"
            )

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory (default: <archive_name>_extracted)",
)
@click.option(
    "--inflate/--raw",
    default=True,
    help="Decompress entry blocks (default) or write payloads as stored",
)
def extract(archive: Path, output: Optional[Path], inflate: bool):
    """Extract files from a PFS archive."""
    from .pfs import PFSArchive

    click.echo(f"Opening: {archive}")

    try:
        with PFSArchive(archive) as reader:
            if output is None:
                output = archive.parent / f"{archive.stem}_extracted"

            click.echo(f"Output:  {output}")
            click.echo(f"Inflate: {'yes' if inflate else 'no'}")
            click.echo()

            extracted_count = 0
            with click.progressbar(
                reader.extract_all(output, inflate=inflate),
                length=len(reader),
                label="Extracting",
                item_show_func=lambda x: _display_name(x[0]) if x else "",
            ) as items:
                for _ in items:
                    extracted_count += 1

            click.echo()
            click.echo(f"Extracted: {extracted_count} files")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("name")
@click.option(
    "--inflate/--raw",
    default=False,
    help="Decompress entry blocks or write the payload as stored (default)",
)
def cat(archive: Path, name: str, inflate: bool):
    """Write a single entry to stdout.

    NAME may be given without the trailing NUL most names are stored with.
    """
    from .pfs import PFSArchive

    try:
        with PFSArchive(archive) as reader:
            if name not in reader and name + "\x00" in reader:
                name += "\x00"
            data = reader.extract_entry(name) if inflate else reader.read_entry(name)
            click.get_binary_stream("stdout").write(data)

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
