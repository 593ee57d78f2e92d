from __future__ import annotations

import argparse
import dataclasses
import json
from pathlib import Path
from typing import List, TypeVar

import cv2

from yolox_kit import DetectorConfig, configure_logging, load_detector_config, load_pipeline


T = TypeVar("T")


def read_image(path: str):
    img = cv2.imread(path)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {path}")
    return img


def limit_results(results: List[T], max_show: int) -> List[T]:
    """First `max_show` results (already by descending probability); 0 keeps all."""
    return results[:max_show] if max_show > 0 else results


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a YOLOX-style ONNX model on one image and print detections.")
    parser.add_argument("--image", required=True, help="Path to an input image.")
    parser.add_argument("--model", default="Models/yolox.onnx", help="Path to the ONNX model.")
    parser.add_argument("--labels", default=None, help="Label list (.txt one per line, or metadata.yaml).")
    parser.add_argument("--config", default=None, help="Optional detector config JSON.")
    parser.add_argument("--conf", type=float, default=None, help="Probability threshold (overrides config).")
    parser.add_argument("--iou", type=float, default=None, help="NMS IoU threshold (overrides config).")
    parser.add_argument("--num-classes", type=int, default=None, help="Classes in the model (overrides config).")
    parser.add_argument("--max-show", type=int, default=20, help="Print at most N detections (0 = all).")
    parser.add_argument("--json", action="store_true", help="Print detections as JSON lines.")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    if args.max_show < 0:
        raise ValueError("--max-show must be >= 0")

    configure_logging(args.log_level)

    cfg = load_detector_config(Path(args.config)) if args.config else DetectorConfig()
    overrides = {}
    if args.conf is not None:
        overrides["prob_threshold"] = args.conf
    if args.iou is not None:
        overrides["nms_threshold"] = args.iou
    if args.num_classes is not None:
        overrides["num_classes"] = args.num_classes
    if overrides:
        cfg = dataclasses.replace(cfg, **overrides)

    image = read_image(args.image)
    pipeline = load_pipeline(args.model, cfg=cfg, labels_path=args.labels)
    try:
        results = pipeline(image)
    finally:
        pipeline.close()

    for res in limit_results(results, args.max_show):
        det = res.detection
        if args.json:
            print(
                json.dumps(
                    {
                        "label": det.label,
                        "name": res.label_name,
                        "probability": round(det.probability, 4),
                        "rect": [round(v, 5) for v in det.rect],
                        "xyxy": [round(v, 1) for v in res.xyxy],
                    }
                )
            )
        else:
            print(f"{res.label_name}: {int(det.probability * 100)}% {tuple(round(v, 1) for v in res.xyxy)}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
