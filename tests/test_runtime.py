import importlib.util
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import numpy as np

from yolox_kit.backends.onnxruntime_backend import OnnxRuntimeBackend
from yolox_kit.config import DetectorConfig
from yolox_kit.detector import AnchorDetector
from yolox_kit.errors import ModelLoadError
from yolox_kit.letterbox import prepare_input
from yolox_kit.runtime import DetectionPipeline, find_project_root, load_pipeline, resolve_path


class TestPrepareInput(unittest.TestCase):
    def test_blob_layout_and_transform(self) -> None:
        image = np.full((32, 64, 3), 200, dtype=np.uint8)
        prep = prepare_input(image, (64, 64))
        self.assertEqual(prep.blob.shape, (1, 3, 64, 64))
        self.assertEqual(prep.blob.dtype, np.float32)
        self.assertEqual(prep.orig_size, (64, 32))
        self.assertEqual(prep.ratio, (1.0, 1.0))
        self.assertEqual(prep.pad, (0.0, 16.0))

    def test_rejects_grayscale(self) -> None:
        with self.assertRaises(ValueError):
            prepare_input(np.zeros((10, 10), dtype=np.uint8), (64, 64))


class TestDetectionPipeline(unittest.TestCase):
    def test_fake_backend_end_to_end(self) -> None:
        detector = AnchorDetector(
            DetectorConfig(num_classes=1, input_width=64, input_height=64, strides=(32,), workers=0),
            labels=["cat"],
        )
        seen = []

        def infer(blob: np.ndarray) -> np.ndarray:
            seen.append(blob.shape)
            out = np.zeros((1, 4, 6), dtype=np.float32)
            # Cell (1, 1) of the stride-32 grid: box centered at (48, 48), 32 px square.
            out[0, 3, :] = [0.5, 0.5, 0.0, 0.0, 1.0, 0.8]
            return out

        pipeline = DetectionPipeline(infer, detector)
        self.addCleanup(pipeline.close)
        results = pipeline(np.zeros((64, 128, 3), dtype=np.uint8))

        self.assertEqual(seen, [(1, 3, 64, 64)])
        self.assertEqual(len(results), 1)
        res = results[0]
        self.assertEqual(res.label_name, "cat")
        # Model pixels 32..64 map back through ratio 0.5 and a 16 px top pad.
        self.assertTrue(np.allclose(res.xyxy, (64.0, 32.0, 127.0, 63.0)))


class TestPathResolution(unittest.TestCase):
    def test_absolute_path_unchanged(self) -> None:
        p = Path(tempfile.gettempdir()).resolve() / "model.onnx"
        self.assertEqual(resolve_path(p), p)

    def test_relative_to_explicit_root(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(resolve_path("Models/a.onnx", root=tmp), (Path(tmp).resolve() / "Models/a.onnx"))

    def test_project_root_marker(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / "pyproject.toml").write_text("", encoding="utf-8")
            nested = root / "a" / "b"
            nested.mkdir(parents=True)
            self.assertEqual(find_project_root(nested), root)


class TestOnnxRuntimeBackend(unittest.TestCase):
    def test_missing_model(self) -> None:
        with self.assertRaises(FileNotFoundError):
            OnnxRuntimeBackend("Models/missing.onnx")

    def test_wrong_extension(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "model.engine"
            path.write_bytes(b"")
            with self.assertRaises(ModelLoadError):
                OnnxRuntimeBackend(path)


class _FakeBackend:
    def __init__(self, model_path, cfg) -> None:
        self.model_path = model_path
        self.providers = cfg.providers

    @property
    def providers_in_use(self):
        return tuple(self.providers or ("CPUExecutionProvider",))

    @property
    def input_size(self):
        return 64, 32

    def infer(self, blob: np.ndarray) -> np.ndarray:
        return np.zeros((1, 8 + 2, 6), dtype=np.float32)


class TestLoadPipeline(unittest.TestCase):
    def test_uses_model_input_size_and_logs_providers(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("yolox_kit.backends.onnxruntime_backend.OnnxRuntimeBackend", _FakeBackend):
                with self.assertLogs("yolox_kit.runtime", level="INFO") as logs:
                    pipeline = load_pipeline(
                        Path(tmp) / "model.onnx",
                        cfg=DetectorConfig(num_classes=1, strides=(16, 32), workers=0),
                        onnx_providers=["CPUExecutionProvider"],
                    )
        self.addCleanup(pipeline.close)

        self.assertEqual(pipeline.input_size, (64, 32))
        self.assertEqual(pipeline.detector.num_anchors, 10)
        self.assertTrue(any("CPUExecutionProvider" in line for line in logs.output))
        self.assertEqual(pipeline(np.zeros((32, 64, 3), dtype=np.uint8)), [])


class TestRunDetectScript(unittest.TestCase):
    def _load_script(self):
        path = Path(__file__).resolve().parents[1] / "Scripts" / "run_detect.py"
        spec = importlib.util.spec_from_file_location("run_detect", path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    def test_limit_results(self) -> None:
        script = self._load_script()
        results = list(range(30))
        self.assertEqual(script.limit_results(results, 20), list(range(20)))
        self.assertEqual(script.limit_results(results, 0), results)
        self.assertEqual(script.limit_results(results[:3], 20), [0, 1, 2])


if __name__ == "__main__":
    unittest.main()
