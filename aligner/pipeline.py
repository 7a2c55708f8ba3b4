from __future__ import annotations

"""
Command-line alignment run.

Examples:
  # Full run (translation + rotation) with the default ORB matcher
  python -m aligner.pipeline --manifest data/shoot/images.yaml --out runtime/transforms.json

  # Translation only, composite preview
  python -m aligner.pipeline --manifest data/shoot/images.yaml --mode translation \
      --render runtime/composite.png --canvas 1600x1200

Manifest format:
  images:
    - id: img0
      path: img0.jpg          # relative to the manifest file
      region: [100, 100, 50, 50]
    - id: img1
      path: img1.jpg
      region: null            # no anchor picked; pairs with it are skipped
"""

import argparse
import asyncio
import json
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np

from aligner.config import AlignmentConfig, load_yaml
from aligner.events import PairOutcome
from aligner.features import OrbMatcher
from aligner.orchestrator import MODES, AlignmentOrchestrator, AlignmentReport
from aligner.render import render_composite
from common.logging_setup import FORMATS, fields, get_logger, setup_logging
from common.types import ImageRecord, SelectedRegion, Transform


log = get_logger("aligner.pipeline")


def load_manifest(path: str | Path) -> List[ImageRecord]:
    """
    Read the manifest and decode every image once (sizes come from the pixels).
    """
    path = Path(path)
    data = load_yaml(path)
    entries = data.get("images")
    if not entries:
        raise ValueError(f"Manifest has no images: {path}")
    base = path.parent
    records: List[ImageRecord] = []
    for i, e in enumerate(entries):
        if "path" not in e:
            raise ValueError(f"Manifest entry {i} has no 'path'")
        img_path = Path(e["path"])
        if not img_path.is_absolute():
            img_path = base / img_path
        if not img_path.exists():
            raise FileNotFoundError(f"Image not found: {img_path}")
        pixels = cv2.imread(str(img_path), cv2.IMREAD_COLOR)
        if pixels is None:
            raise RuntimeError(f"Failed to decode image: {img_path}")
        region = e.get("region")
        H, W = pixels.shape[:2]
        records.append(
            ImageRecord(
                id=str(e.get("id", img_path.stem)),
                width=W,
                height=H,
                region=None if region is None else SelectedRegion.from_seq(region),
                transform=Transform.from_dict(e.get("transform") or {}),
                source=str(img_path),
                pixels=pixels,
            )
        )
    return records


def write_transforms(path: Path, records: List[ImageRecord]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps([r.to_meta() for r in records], indent=2))


def _write_event_row(path: Path, outcome: PairOutcome) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", buffering=1) as f:
        f.write(json.dumps(outcome.to_dict()) + "\n")


def parse_size(s: str) -> Tuple[int, int]:
    parts = s.lower().replace(",", "x").split("x")
    if len(parts) != 2:
        raise ValueError("Size must be WxH or W,H")
    w, h = int(parts[0]), int(parts[1])
    if w <= 0 or h <= 0:
        raise ValueError("Size must be positive")
    return w, h


def run(
    manifest: str | Path,
    *,
    config: AlignmentConfig,
    mode: str = "all",
    events_path: Optional[Path] = None,
) -> AlignmentReport:
    records = load_manifest(manifest)
    on_event = None
    if events_path is not None:
        on_event = lambda o: _write_event_row(events_path, o)  # noqa: E731
    orch = AlignmentOrchestrator(OrbMatcher(config.orb), config=config, on_event=on_event)
    return asyncio.run(orch.run(records, mode))


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Region-anchored image sequence alignment")
    ap.add_argument("--manifest", required=True, help="YAML list of images and regions")
    ap.add_argument("--config", default=None, help="YAML parameters (default: config/params.yaml if present)")
    ap.add_argument("--mode", choices=MODES, default="all")
    ap.add_argument("--step", type=float, default=None, help="Override rotation search step (deg)")
    ap.add_argument("--out", default=None, help="Output JSON with one transform per image")
    ap.add_argument("--events", default=None, help="Append per-pair outcomes as JSON lines")
    ap.add_argument("--render", default=None, help="Write a blended composite PNG")
    ap.add_argument("--canvas", default="1600x1200", help="Composite canvas WxH")
    ap.add_argument("--alpha", type=float, default=0.5, help="Composite blend opacity")
    ap.add_argument("--log-format", choices=FORMATS, default=None,
                    help="Log output format (default: config, then env LOG_FORMAT, then json)")
    args = ap.parse_args(argv)

    P: Dict = {}
    cfg_path = args.config or ("config/params.yaml" if Path("config/params.yaml").exists() else None)
    if cfg_path:
        P = load_yaml(cfg_path)
    log_cfg = P.get("logging") or {}
    setup_logging(log_cfg.get("level", "INFO"), fmt=args.log_format or log_cfg.get("format"))

    config = AlignmentConfig.from_dict(P)
    if args.step is not None:
        config.rotation = replace(config.rotation, step_deg=float(args.step))

    output = P.get("output") or {}
    out_path = Path(args.out or output.get("transforms_file", "runtime/transforms.json"))
    events_file = args.events or output.get("events_file")
    events_path = Path(events_file) if events_file else None

    report = run(args.manifest, config=config, mode=args.mode, events_path=events_path)
    write_transforms(out_path, report.images)
    log.info(
        "Alignment finished",
        extra=fields(
            ok=report.ok,
            out=str(out_path),
            degraded=sum(1 for e in report.events if e.degraded),
        ),
    )

    if args.render:
        canvas = parse_size(args.canvas)
        pixels: Dict[str, np.ndarray] = {r.id: r.pixels for r in report.images}
        composite = render_composite(report.images, pixels, canvas, alpha=args.alpha)
        Path(args.render).parent.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(str(args.render), composite)

    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
