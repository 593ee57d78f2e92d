from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np
from tqdm import tqdm

from yolox_kit import AnchorDetector, DetectorConfig, configure_logging


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if q < 0.0 or q > 100.0:
        raise ValueError("q must be in [0, 100].")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    if lo == hi:
        return float(sorted_values[lo])
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms_sorted = sorted(v * 1000.0 for v in values_s)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)),
        p50_ms=_percentile(ms_sorted, 50.0),
        p90_ms=_percentile(ms_sorted, 90.0),
        p95_ms=_percentile(ms_sorted, 95.0),
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def _synthetic_output(detector: AnchorDetector, hit_rate: float, rng: np.random.Generator) -> np.ndarray:
    """
    Random raw tensor where roughly `hit_rate` of the anchors carry a confident object.
    """

    cfg = detector.cfg
    n = detector.num_anchors
    out = np.zeros((1, n, cfg.record_width), dtype=np.float32)
    out[0, :, 0:2] = rng.uniform(0.0, 1.0, size=(n, 2))
    out[0, :, 2:4] = rng.uniform(-1.0, 2.0, size=(n, 2))
    out[0, :, 4] = np.where(rng.uniform(size=n) < hit_rate, rng.uniform(0.6, 1.0, size=n), 0.01)
    out[0, :, 5:] = rng.uniform(0.0, 1.0, size=(n, cfg.num_classes)) ** 4
    return out


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark anchor decode + NMS on synthetic network output.")
    parser.add_argument("--imgsz", type=int, default=640, help="Model input size (square).")
    parser.add_argument("--num-classes", type=int, default=26)
    parser.add_argument("--conf", type=float, default=0.3)
    parser.add_argument("--iou", type=float, default=0.45)
    parser.add_argument("--max-candidates", type=int, default=100)
    parser.add_argument("--max-det", type=int, default=100)
    parser.add_argument("--chunk-size", type=int, default=64)
    parser.add_argument("--workers", type=int, default=None, help="Decode threads (0/1 = inline).")
    parser.add_argument("--hit-rate", type=float, default=0.002, help="Fraction of anchors holding an object.")
    parser.add_argument("--warmup", type=int, default=10)
    parser.add_argument("--iters", type=int, default=200)
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    if args.imgsz < 32:
        raise ValueError("--imgsz must be >= 32")
    if args.iters < 1:
        raise ValueError("--iters must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")

    configure_logging(args.log_level)

    cfg = DetectorConfig(
        prob_threshold=args.conf,
        nms_threshold=args.iou,
        num_classes=args.num_classes,
        input_width=args.imgsz,
        input_height=args.imgsz,
        max_candidates=args.max_candidates,
        max_detections=args.max_det,
        chunk_size=args.chunk_size,
        workers=args.workers,
    )

    rng = np.random.default_rng(0)
    timings: List[float] = []
    kept: List[int] = []
    with AnchorDetector(cfg) as detector:
        output = _synthetic_output(detector, args.hit_rate, rng)
        for _ in range(args.warmup):
            detector.process(output)
        for _ in tqdm(range(args.iters), unit="cycle"):
            t0 = time.perf_counter()
            dets = detector.process(output)
            timings.append(time.perf_counter() - t0)
            kept.append(len(dets))

        print(f"anchors={detector.num_anchors} workers={detector.decoder.workers} chunk={cfg.chunk_size}")
    print(_format_summary("decode+sort+nms", _summarize_ms(timings)))
    print(f"detections_mean={statistics.fmean(kept):.1f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
