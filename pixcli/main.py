from __future__ import annotations

import argparse
import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from libpix import Model, PixError, SysFileSystem, __version__
from libpix.summary import summarize_model
from libpix.writer import save_to_mid_format

console = Console()
_log = logging.getLogger("pixcli")

_MODEL_EXTS = (".pmg", ".pmd", ".pim")


def model_base_path(arg: str) -> str:
    """Normalize a CLI model argument to a ``/``-rooted base path without extension."""
    path = arg.replace("\\", "/")
    root, ext = os.path.splitext(path)
    if ext.lower() in _MODEL_EXTS:
        path = root
    if not path.startswith("/"):
        path = "/" + path
    return path


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def cmd_summary(args: argparse.Namespace) -> int:
    model = Model(SysFileSystem(args.root))
    try:
        model.load_or_raise(model_base_path(args.model))
    except PixError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    s = summarize_model(model)
    console.print(f"[bold]Model:[/bold] {s.path}")
    console.print(f"[bold]Geometry version:[/bold] {s.geometry_version_hex}")
    console.print(
        f"[bold]Vertices:[/bold] {s.vertex_count}   [bold]Triangles:[/bold] {s.triangle_count}"
        f"   [bold]Skinned vertices:[/bold] {s.skin_vertex_count}"
    )
    console.print(
        f"[bold]Bones:[/bold] {s.bone_count}   [bold]Locators:[/bold] {s.locator_count}"
        f"   [bold]Parts:[/bold] {s.part_count}"
    )
    console.print(f"[bold]Looks:[/bold] {', '.join(s.looks) or '-'}")
    console.print(f"[bold]Variants:[/bold] {', '.join(s.variants) or '-'}")
    console.print(f"[bold]Collision:[/bold] {s.has_collision}   [bold]Prefab:[/bold] {s.has_prefab}")

    pt = Table(title="Pieces")
    pt.add_column("#", justify="right")
    pt.add_column("Material", justify="right")
    pt.add_column("Verts", justify="right")
    pt.add_column("Tris", justify="right")
    pt.add_column("Bones", justify="right")
    pt.add_column("Streams", overflow="fold")
    if s.pieces:
        for p in s.pieces:
            pt.add_row(str(p.index), str(p.material), str(p.vertices), str(p.triangles), str(p.bones), " ".join(p.streams))
    else:
        pt.add_row("(none)", "-", "-", "-", "-", "-")
    console.print(pt)

    mt = Table(title="Materials (look 0)")
    mt.add_column("Alias", overflow="fold")
    mt.add_column("Effect")
    mt.add_column("Texture", overflow="fold")
    if s.materials:
        for m in s.materials:
            mt.add_row(m.alias, m.effect or "-", m.texture or "-")
    else:
        mt.add_row("(none)", "-", "-")
    console.print(mt)
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    export_fs = SysFileSystem(args.out)
    failed = 0
    for arg in args.models:
        model = Model(SysFileSystem(args.root))
        if not model.load(model_base_path(arg)):
            failed += 1
            continue
        result = save_to_mid_format(model, export_fs)
        if not (result["pim"] and result["pit"]):
            failed += 1
    if failed:
        _log.warning("%d of %d model(s) failed", failed, len(args.models))
    return 1 if failed else 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pixconv", description="Convert Prism3D models to pim/pit/pis text containers")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug output")
    p.add_argument("-q", "--quiet", action="store_true", help="Warnings and errors only")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("summary", help="Print info about a model")
    s.add_argument("model", help="Model base path inside --root, e.g. /vehicle/truck/cab")
    s.add_argument("--root", default=".", help="Directory the virtual paths are resolved under")
    s.set_defaults(fn=cmd_summary)

    c = sub.add_parser("convert", help="Write .pim/.pit/.pis for one or more models")
    c.add_argument("models", nargs="+", help="Model base paths inside --root")
    c.add_argument("--root", default=".", help="Directory the virtual paths are resolved under")
    c.add_argument("--out", default="export", help="Export directory (mirrors the virtual paths)")
    c.set_defaults(fn=cmd_convert)

    return p


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.quiet)
    return int(args.fn(args))


if __name__ == "__main__":
    raise SystemExit(main())
