import argparse
import hashlib
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from citation_locator.config import DEFAULT_CONFIG, EngineConfig, load_config
from citation_locator.geometry.highlight import compute_anchor_highlight
from citation_locator.geometry.overlay import compute_origin_percent, to_percent_rect, to_pixel_bbox
from citation_locator.io.layout import load_claims, load_layout, save_layout
from citation_locator.io.pdf import extract_source_layout, render_page, render_scale_for_dpi
from citation_locator.io.snippets import crop_with_padding, highlight_region, save_snippet
from citation_locator.search.status import highlight_color, status_flags, status_label
from citation_locator.summary import build_search_summary
from citation_locator.types import (
    Claim,
    ClaimResult,
    EvidenceOverlay,
    RenderScale,
    SourceLayout,
    Verification,
    VerificationReport,
)
from citation_locator.verify import verify_citation

logger = logging.getLogger(__name__)

SNIPPET_PAD_PX = 24
BGR_COLORS = {"blue": (255, 120, 0), "amber": (0, 176, 255)}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="citation-locator",
        description="Locate and verify quoted phrases in a source document"
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", help="Extract a source layout from a PDF")
    extract.add_argument("--pdf", required=True, help="Path to the source PDF")
    extract.add_argument("--out", required=True, help="Path of the layout JSON to write")

    verify = sub.add_parser("verify", help="Verify one or more claims")
    source = verify.add_mutually_exclusive_group(required=True)
    source.add_argument("--pdf", help="Path to the source PDF")
    source.add_argument("--layout", help="Path to a layout JSON written by 'extract'")
    claims = verify.add_mutually_exclusive_group(required=True)
    claims.add_argument("--phrase", help="Phrase claimed to be quoted from the source")
    claims.add_argument("--claims", help="Path to a JSON list of claims")
    verify.add_argument("--anchor", help="Anchor text inside the phrase")
    verify.add_argument("--page", type=int, help="Expected page (1-based)")
    verify.add_argument("--line", type=int, nargs="*", default=[], help="Expected line(s)")
    verify.add_argument("--custom-phrase", help="Extra phrase tried as a last resort")
    verify.add_argument("--dpi", type=int, default=150, help="DPI for rendering (default: 150)")
    verify.add_argument("--snippets-dir", help="Directory for evidence snippet images (needs --pdf)")
    verify.add_argument("--config", help="Path to an engine config JSON")
    verify.add_argument(
        "--out", default="verification_report.json",
        help="Path of the report JSON (default: verification_report.json)"
    )
    return parser


def _claims_from_args(args: argparse.Namespace) -> List[Claim]:
    if args.claims:
        return load_claims(Path(args.claims))
    return [Claim(
        expected_phrase=args.phrase,
        anchor_text=args.anchor,
        expected_page=args.page,
        expected_lines=tuple(args.line),
        custom_phrase=args.custom_phrase,
    )]


def _run_id(*paths: Path) -> str:
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    hash_input = "".join(str(p.absolute()) for p in paths)
    short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]
    return f"verify_{timestamp}_{short_hash}"


class EvidenceRenderer:
    """Computes overlays, rendering each PDF page at most once."""

    def __init__(
        self,
        layout: SourceLayout,
        pdf_path: Optional[Path],
        dpi: int,
        snippets_dir: Optional[Path]
    ):
        self.layout = layout
        self.pdf_path = pdf_path
        self.dpi = dpi
        self.snippets_dir = snippets_dir
        self._images: Dict[int, np.ndarray] = {}

    def _image(self, page_number: int) -> np.ndarray:
        if page_number not in self._images:
            self._images[page_number] = render_page(self.pdf_path, page_number, self.dpi)
        return self._images[page_number]

    def overlay(self, index: int, claim: Claim, verification: Verification) -> Optional[EvidenceOverlay]:
        match = verification.document
        if match is None:
            return None

        img = None
        if self.pdf_path is not None:
            img = self._image(match.verified_page)
            height, width = img.shape[:2]
            scale = render_scale_for_dpi(self.dpi)
        else:
            page = self.layout.page(match.verified_page)
            if page is None or not page.width or not page.height:
                return None
            width, height = int(round(page.width)), int(round(page.height))
            scale = RenderScale(x=1.0, y=1.0)

        anchor = compute_anchor_highlight(
            match.phrase_match_item, match.anchor_match_item,
            verification.verified_anchor_text, verification.verified_full_phrase
        )
        overlay = EvidenceOverlay(
            page=match.verified_page,
            image_width=width,
            image_height=height,
            phrase_rect=to_percent_rect(match.phrase_match_item, scale, width, height),
            anchor_rect=(
                to_percent_rect(anchor.item, scale, width, height) if anchor.show else None
            ),
            origin=compute_origin_percent(match.phrase_match_item, scale, width, height),
            image_path=None,
        )

        if img is not None and self.snippets_dir is not None:
            bbox = to_pixel_bbox(match.phrase_match_item, scale, width, height)
            if bbox is not None and bbox[2] > bbox[0] and bbox[3] > bbox[1]:
                color = BGR_COLORS.get(highlight_color(verification), BGR_COLORS["blue"])
                marked = highlight_region(img, bbox, color)
                crop = crop_with_padding(marked, bbox, SNIPPET_PAD_PX)
                filename = save_snippet(crop, self.snippets_dir, index, match.verified_page)
                overlay.image_path = str(self.snippets_dir / filename)
        return overlay


def _extract(args: argparse.Namespace) -> None:
    pdf_path = Path(args.pdf)
    out_path = Path(args.out)

    print("[1/2] Extracting text...")
    layout = extract_source_layout(pdf_path)
    items = sum(len(page.items) for page in layout.pages)
    print(f"  Extracted {items} text items from {len(layout.pages)} pages")

    print("[2/2] Writing layout...")
    save_layout(layout, out_path)
    print(f"  Written to {out_path}")


def _verify(args: argparse.Namespace) -> None:
    config: EngineConfig = load_config(Path(args.config)) if args.config else DEFAULT_CONFIG
    pdf_path = Path(args.pdf) if args.pdf else None
    source_path = pdf_path or Path(args.layout)
    if pdf_path is not None and pdf_path.suffix.lower() != ".pdf":
        raise ValueError(f"Source must be a PDF file, got: {pdf_path.suffix}")
    snippets_dir = Path(args.snippets_dir) if args.snippets_dir else None

    run_id = _run_id(source_path)
    print(f"Run ID: {run_id}")
    print()

    print("[1/4] Loading source layout...")
    layout = extract_source_layout(pdf_path) if pdf_path else load_layout(source_path)
    print(f"  Loaded {len(layout.pages)} pages")

    print("[2/4] Loading claims...")
    claims = _claims_from_args(args)
    print(f"  Loaded {len(claims)} claims")

    print("[3/4] Verifying claims...")
    renderer = EvidenceRenderer(layout, pdf_path, args.dpi, snippets_dir)
    results = []
    for index, claim in enumerate(claims):
        verification = verify_citation(claim, layout, config)
        evidence = renderer.overlay(index, claim, verification)
        results.append(ClaimResult(claim=claim, verification=verification, evidence=evidence))

        summary = build_search_summary(verification.search_attempts)
        label = status_label(status_flags(verification))
        where = (
            f" on page {verification.document.verified_page}"
            if verification.document else ""
        )
        print(
            f"  [{index}] {label}: {verification.status.value}{where} "
            f"({summary.total_attempts} attempts, {summary.distinct_queries} queries)"
        )
        if verification.ambiguity is not None:
            print(f"      {verification.ambiguity.note}")

    print("[4/4] Writing report...")
    inputs = {"source": str(source_path.absolute()), "dpi": str(args.dpi)}
    if args.claims:
        inputs["claims"] = str(Path(args.claims).absolute())
    report = VerificationReport(run_id=run_id, inputs=inputs, results=results)

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w") as f:
        f.write(report.model_dump_json(indent=2))
    print(f"  Written to {out_path}")


def main(argv: Optional[List[str]] = None) -> None:
    """
    Command-line entrypoint.

    extract: PDF -> layout JSON
    verify:  PDF or layout JSON + claim(s) -> verification report JSON,
             optionally with evidence snippet images
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    if args.command == "extract":
        _extract(args)
    else:
        if args.snippets_dir and not args.pdf:
            parser.error("--snippets-dir requires --pdf")
        _verify(args)


if __name__ == "__main__":
    main()
