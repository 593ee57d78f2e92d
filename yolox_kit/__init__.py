"""
Decode-and-filter stage for YOLOX-style detection heads.

Turns the raw per-anchor tensor of a network into final detections: a fixed
anchor grid, a data-parallel proposal decode, a probability sort and a greedy
class-agnostic NMS. Core modules need only NumPy; OpenCV and ONNX Runtime are
imported lazily by the input preparation and backend helpers.
"""

from .anchors import DEFAULT_STRIDES, anchor_count, generate_anchors
from .buffers import DetectionBuffer
from .config import DetectorConfig, load_detector_config
from .decode import DecoderConfig, ProposalDecoder
from .detector import AnchorDetector
from .errors import BackendUnavailable, CapacityExceededError, ConfigurationError, ModelLoadError
from .letterbox import prepare_input
from .log import configure_logging
from .metadata import load_class_names, load_labels
from .nms import NMSConfig, iou_xywh, nms, sort_by_probability
from .runtime import DetectionPipeline, ImageDetection, load_pipeline
from .types import Anchor, Detection, probability_key
from .viewport import flip_y, input_to_image_matrix, to_viewport

__all__ = [
    "DEFAULT_STRIDES",
    "anchor_count",
    "generate_anchors",
    "DetectionBuffer",
    "DetectorConfig",
    "load_detector_config",
    "DecoderConfig",
    "ProposalDecoder",
    "AnchorDetector",
    "BackendUnavailable",
    "CapacityExceededError",
    "ConfigurationError",
    "ModelLoadError",
    "prepare_input",
    "configure_logging",
    "load_class_names",
    "load_labels",
    "NMSConfig",
    "iou_xywh",
    "nms",
    "sort_by_probability",
    "DetectionPipeline",
    "ImageDetection",
    "load_pipeline",
    "Anchor",
    "Detection",
    "probability_key",
    "flip_y",
    "input_to_image_matrix",
    "to_viewport",
]
