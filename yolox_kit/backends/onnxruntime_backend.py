from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import BackendUnavailable, ModelLoadError


PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


class OnnxRuntimeBackend:
    """
    ONNX Runtime backend producing the raw per-anchor tensor.

    Expects an NCHW float32 blob shaped (1, 3, H, W) and returns the selected
    output as float32, typically (1, num_anchors, 5 + num_classes).
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except ImportError as e:  # pragma: no cover
            raise BackendUnavailable(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))
        if self.model_path.suffix.lower() != ".onnx":
            raise ModelLoadError(f"ONNX backend expects a .onnx model, got {self.model_path.name}")

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        self.output_name = cfg.output_name or self.session.get_outputs()[0].name

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    @property
    def input_size(self) -> Tuple[int, int]:
        """
        Model input (width, height) read from the NCHW input shape.
        """

        for inp in self.session.get_inputs():
            if inp.name != self.input_name:
                continue
            shape = list(inp.shape)
            if len(shape) != 4 or not all(isinstance(d, int) for d in shape[2:]):
                raise ModelLoadError(f"Model input {inp.name!r} has no static NCHW shape: {shape}")
            return int(shape[3]), int(shape[2])
        raise ModelLoadError(f"Model has no input named {self.input_name!r}")

    def infer(self, blob: np.ndarray) -> np.ndarray:
        outputs = self.session.run([self.output_name], {self.input_name: blob})
        return np.asarray(outputs[0], dtype=np.float32)
