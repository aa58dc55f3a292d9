"""CLI entry point for merkledrop."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, NoReturn

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from merkledrop_core.config import MerkledropConfig, TreeSourceConfig, load_config
from merkledrop_core.config.loader import DEFAULT_CONFIG_TEMPLATE
from merkledrop_core.merkle import (
    AmbiguousLeaf,
    MerkleError,
    StandardMerkleTree,
    parse_leaf_encoding,
    verify_proof,
)
from merkledrop_core.sources import SourceError, parse_bool, read_leaves, read_source

app = typer.Typer(
    name="merkledrop",
    help="Build Merkle roots and proofs for airdrop and distribution lists.",
)

config_app = typer.Typer(help="Manage merkledrop configuration.")
app.add_typer(config_app, name="config")

# Global state
_config: MerkledropConfig | None = None

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps({
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        })


def _setup_logging(cfg: MerkledropConfig) -> None:
    if cfg.log_format == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False)
    logging.basicConfig(
        level=_LOG_LEVELS[cfg.log_level],
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def _get_config() -> MerkledropConfig:
    if _config is None:
        return load_config()
    return _config


def _fail(message: str) -> NoReturn:
    rprint(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", help="Path to merkledrop.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        _fail(str(e))
    _setup_logging(_config)


# ---------------------------------------------------------------------------
# Build commands
# ---------------------------------------------------------------------------


def _split_list(text: str) -> list[str]:
    return [part.strip() for part in text.split(",") if part.strip()]


def _write_tree(leaves: list[tuple], leaf_encoding: list[str], output: str) -> None:
    try:
        tree = StandardMerkleTree.of(leaves, leaf_encoding)
    except MerkleError as e:
        _fail(str(e))

    out = Path(output)
    try:
        tree.save(out)
    except OSError as e:
        _fail(f"could not write {out}: {e}")

    typer.echo(f"Merkle Root: {tree.root}")
    rprint(f"[green]Merkle Tree written to[/green] {escape(str(out))}")


def _build_from_config(csv: str, output: str | None, source: TreeSourceConfig) -> None:
    cfg = _get_config()
    try:
        leaves = read_source(csv, source, cfg.csv)
    except SourceError as e:
        _fail(str(e))
    _write_tree(leaves, source.leaf_encoding, output or source.output)


@app.command(name="build-airdrop")
def build_airdrop(
    csv: Annotated[str, typer.Option("--csv", "-c", help="CSV file with addresses, amounts, and isTop80 flags")],
    output: Annotated[str | None, typer.Option("--output", "-o", help="Output file path for the Merkle tree")] = None,
) -> None:
    """Build an airdrop tree over (address, uint256, bool) leaves."""
    _build_from_config(csv, output, _get_config().airdrop)


@app.command(name="build-distribution")
def build_distribution(
    csv: Annotated[str, typer.Option("--csv", "-c", help="CSV file with addresses and amounts")],
    output: Annotated[str | None, typer.Option("--output", "-o", help="Output file path for the Merkle tree")] = None,
) -> None:
    """Build a distribution tree over (address, uint256) leaves."""
    _build_from_config(csv, output, _get_config().distribution)


@app.command()
def build(
    csv: Annotated[str, typer.Option("--csv", "-c", help="CSV file with one leaf per row")],
    types: Annotated[str, typer.Option("--types", help="Comma-separated field types, e.g. address,uint256")],
    columns: Annotated[str, typer.Option("--columns", help="Comma-separated CSV columns, one per type")],
    output: Annotated[str, typer.Option("--output", "-o", help="Output file path for the Merkle tree")],
) -> None:
    """Build a tree with an arbitrary leaf encoding."""
    type_list = _split_list(types)
    column_list = _split_list(columns)
    try:
        leaf_encoding = list(parse_leaf_encoding(type_list))
    except MerkleError as e:
        _fail(str(e))
    if len(column_list) != len(leaf_encoding):
        _fail(f"{len(column_list)} columns given for {len(leaf_encoding)} field types")

    try:
        leaves = read_leaves(csv, column_list, leaf_encoding, _get_config().csv)
    except SourceError as e:
        _fail(str(e))
    _write_tree(leaves, leaf_encoding, output)


# ---------------------------------------------------------------------------
# Proof commands
# ---------------------------------------------------------------------------


def _load_tree(path: str) -> StandardMerkleTree:
    tree_path = Path(path)
    if not tree_path.is_file():
        _fail(f'Merkle tree file not found at path "{path}". Please provide a valid file.')
    try:
        return StandardMerkleTree.load_file(tree_path)
    except MerkleError as e:
        _fail(str(e))


def _find_address(tree: StandardMerkleTree, address: str) -> int:
    """Index of the leaf whose address field equals *address*."""
    cfg = _get_config().proof
    if cfg.address_field >= len(tree.leaf_encoding):
        _fail(f"leaf has no field {cfg.address_field}")

    def _norm(value: object) -> str:
        text = str(value).strip()
        return text if cfg.case_sensitive else text.lower()

    wanted = _norm(address)
    matches = [i for i, v in tree.entries() if _norm(v[cfg.address_field]) == wanted]
    if not matches:
        _fail("Address not found in the Merkle tree")
    if len(matches) > 1:
        _fail(f"{AmbiguousLeaf(matches)}")
    return matches[0]


@app.command()
def prove(
    tree_path: Annotated[str, typer.Option("--tree", "-t", help="The path to the Merkle tree JSON file")],
    address: Annotated[str | None, typer.Option("--address", "-a", help="The address to generate a Merkle proof for")] = None,
    index: Annotated[int | None, typer.Option("--index", "-i", help="Leaf index, in CSV order")] = None,
    output: Annotated[str | None, typer.Option("--output", "-o", help="Optional path to write the proof to")] = None,
) -> None:
    """Generate the proof for one leaf of a dumped tree."""
    if (address is None) == (index is None):
        _fail("pass exactly one of --address or --index")

    tree = _load_tree(tree_path)
    leaf_index = index if index is not None else _find_address(tree, address)
    try:
        proof = tree.get_proof(leaf_index)
    except MerkleError as e:
        _fail(str(e))

    typer.echo(f"Generated proof: {' '.join(proof)}")
    if output:
        out = Path(output)
        try:
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(json.dumps(proof))
        except OSError as e:
            _fail(f"could not write {out}: {e}")
        rprint(f"[green]Proof written to[/green] {escape(str(out))}")


def _parse_leaf_values(text: str) -> list:
    """Split a comma-separated leaf, or parse it as a JSON array when it starts with ``[``."""
    if not text.lstrip().startswith("["):
        return [part.strip() for part in text.split(",")]
    try:
        values = json.loads(text)
    except json.JSONDecodeError as e:
        _fail(f"invalid leaf JSON: {e}")
    if not isinstance(values, list):
        _fail("leaf must be a JSON array")
    return values


@app.command()
def verify(
    root: Annotated[str, typer.Option("--root", "-r", help="Expected Merkle root (0x-hex)")],
    types: Annotated[str, typer.Option("--types", help="Comma-separated field types of the leaf")],
    leaf: Annotated[str, typer.Option("--leaf", "-l", help="Comma-separated leaf values, or a JSON array")],
    proof_path: Annotated[str, typer.Option("--proof", "-p", help="JSON file with the proof array")],
) -> None:
    """Verify a proof against a root without the tree."""
    try:
        leaf_encoding = parse_leaf_encoding(_split_list(types))
    except MerkleError as e:
        _fail(str(e))

    raw_values = _parse_leaf_values(leaf)
    if len(raw_values) != len(leaf_encoding):
        _fail(f"{len(raw_values)} values given for {len(leaf_encoding)} field types")
    try:
        values = [
            parse_bool(v) if tag == "bool" and isinstance(v, str) else v
            for tag, v in zip(leaf_encoding, raw_values)
        ]
    except ValueError as e:
        _fail(str(e))

    path = Path(proof_path)
    if not path.is_file():
        _fail(f'Proof file not found at path "{proof_path}".')
    try:
        proof = json.loads(path.read_bytes().decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        _fail(f"invalid proof JSON in {path}: {e}")
    if not isinstance(proof, list):
        _fail("proof must be a JSON array of hex strings")

    try:
        ok = verify_proof(root, leaf_encoding, values, proof)
    except MerkleError as e:
        _fail(str(e))

    if ok:
        rprint("[green]Valid proof:[/green] true")
    else:
        rprint("[red]Valid proof:[/red] false")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Inspection commands
# ---------------------------------------------------------------------------


@app.command()
def show(
    tree_path: Annotated[str, typer.Option("--tree", "-t", help="The path to the Merkle tree JSON file")],
    render: Annotated[bool, typer.Option("--render", help="Draw the node array")] = False,
) -> None:
    """Show the leaves and root of a dumped tree."""
    tree = _load_tree(tree_path)

    table = Table(title=f"Merkle Tree ({len(tree)} leaves)")
    table.add_column("Index", justify="right", style="cyan")
    for tag in tree.leaf_encoding:
        table.add_column(tag)
    for i, value in tree.entries():
        table.add_row(str(i), *(escape(str(v)) for v in value))
    rprint(table)
    rprint(f"\n[dim]Root:[/dim] {tree.root}")

    if render:
        rprint(Panel(tree.render(), title="Nodes", border_style="blue"))


@app.command()
def validate(
    tree_path: Annotated[str, typer.Option("--tree", "-t", help="The path to the Merkle tree JSON file")],
) -> None:
    """Recompute every leaf hash of a dumped tree and check its nodes."""
    tree = _load_tree(tree_path)
    try:
        tree.validate()
    except MerkleError as e:
        _fail(str(e))
    rprint(f"[green]Tree is valid.[/green] Root: {tree.root}")


# ---------------------------------------------------------------------------
# Config commands
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: Annotated[bool, typer.Option("--force", help="Overwrite existing file")] = False,
) -> None:
    """Write a starter merkledrop.yaml in the current directory."""
    target = Path("merkledrop.yaml")
    if target.exists() and not force:
        rprint("[yellow]merkledrop.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")


if __name__ == "__main__":
    app()
