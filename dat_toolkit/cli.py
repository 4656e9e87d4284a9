"""DAT Toolkit CLI."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .dat import DEFAULT_INDEX_SLOT, ArchiveId, LoadOptions, LookupPolicy


def build_options(index_slot: int, strict_magic: bool, first_match: bool) -> LoadOptions:
    policy = LookupPolicy.FIRST_MATCH_WINS if first_match else LookupPolicy.LAST_MATCH_WINS
    return LoadOptions(index_slot=index_slot, strict_magic=strict_magic, lookup_policy=policy)


def archive_options(func):
    """Options shared by every command that loads an archive."""
    func = click.option(
        "--first-match",
        is_flag=True,
        help="Resolve duplicate ids to the first index entry instead of the last",
    )(func)
    func = click.option(
        "--strict-magic/--no-strict-magic",
        default=True,
        help="Reject archives whose header magic is not 'AN\\x1a'",
    )(func)
    func = click.option(
        "--index-slot",
        type=int,
        default=DEFAULT_INDEX_SLOT,
        show_default=True,
        help="Manifest entry holding the file id / base id table",
    )(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log parsing details to stderr")
def main(verbose: bool):
    """DAT Toolkit - Inspect and extract chunks from .dat archives.

    \b
    An archive is read in three stages:
    - Header: version, magic and manifest location
    - Manifest (MFT): offset, size and compression of every chunk
    - Index table: file id / base id pairs mapping onto manifest slots
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


@main.command()
@click.argument("archive", type=click.Path(exists=True, path_type=Path))
@archive_options
def info(archive: Path, index_slot: int, strict_magic: bool, first_match: bool):
    """Show header, manifest and index table summary."""
    from .dat import load

    click.echo(f"Loading: {archive}")

    try:
        dat = load(archive, build_options(index_slot, strict_magic, first_match))

        header = dat.header
        compressed = sum(1 for entry in dat.entries if entry.is_compressed)

        click.echo(f"Version:       {header.version}")
        click.echo(f"Magic:         {header.identifier!r}")
        click.echo(f"Chunk size:    {header.chunk_size}")
        click.echo(f"Flags:         0x{header.flags:08X}")
        click.echo(f"MFT offset:    {header.mft_offset}")
        click.echo(f"MFT size:      {header.mft_size}")
        click.echo()
        click.echo(f"MFT entries:   {len(dat.entries)} ({compressed} compressed)")
        click.echo(f"Index entries: {len(dat.index)}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument("archive", type=click.Path(exists=True, path_type=Path))
@click.option("--limit", type=int, default=None, help="Show at most N entries")
@archive_options
def index(archive: Path, limit: Optional[int], index_slot: int, strict_magic: bool, first_match: bool):
    """List the file id / base id pairs of the index table."""
    from .dat import load

    try:
        dat = load(archive, build_options(index_slot, strict_magic, first_match))

        entries = dat.index if limit is None else dat.index[:limit]
        click.echo(f"{'file_id':>10}  {'base_id':>10}")
        for entry in entries:
            click.echo(f"{entry.file_id:>10}  {entry.base_id:>10}")

        if len(entries) < len(dat.index):
            click.echo(f"... {len(dat.index) - len(entries)} more")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument("archive", type=click.Path(exists=True, path_type=Path))
@click.argument("number", type=int)
@click.option("--base-id", is_flag=True, help="Treat NUMBER as a base id instead of a file id")
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    help="Output file (default: <archive_name>_<number>.bin)",
)
@click.option(
    "--raw",
    is_flag=True,
    help="Write the stored bytes without decompressing",
)
@click.option(
    "--preview",
    is_flag=True,
    help="Print the first 16 bytes instead of writing a file",
)
@archive_options
def extract(
    archive: Path,
    number: int,
    base_id: bool,
    output: Optional[Path],
    raw: bool,
    preview: bool,
    index_slot: int,
    strict_magic: bool,
    first_match: bool,
):
    """Extract one chunk by file id (or base id)."""
    from .dat import decode_chunk, load, read_chunk, resolve
    from .utils.hexdump import hex_preview

    kind = ArchiveId.BASE_ID if base_id else ArchiveId.FILE_ID

    try:
        dat = load(archive, build_options(index_slot, strict_magic, first_match))

        entry = resolve(dat, kind, number)
        data = read_chunk(dat.path, entry)
        if not raw:
            data = decode_chunk(entry, data)

        click.echo(f"Entry:  offset={entry.offset} size={entry.size} "
                   f"compressed={'yes' if entry.is_compressed else 'no'}")
        click.echo(f"Output: {len(data)} bytes")

        if preview:
            hex_part, ascii_part = hex_preview(data)
            click.echo(f"Hex:    {hex_part}")
            click.echo(f"ASCII:  {ascii_part}")
            return

        if output is None:
            output = archive.parent / f"{archive.stem}_{number}.bin"
        output.write_bytes(data)
        click.echo(f"Created: {output}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
