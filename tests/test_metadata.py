import tempfile
import unittest
from pathlib import Path

from yolox_kit.errors import ConfigurationError
from yolox_kit.metadata import load_class_names, load_labels, parse_labels


class TestLabels(unittest.TestCase):
    def _write(self, name: str, text: str) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_parse_trims_and_skips_blank_lines(self) -> None:
        self.assertEqual(parse_labels("cat\r\n dog \n\n bird\n"), ["cat", "dog", "bird"])

    def test_load_text_labels(self) -> None:
        path = self._write("labels.txt", "person\nbicycle\ncar\n")
        self.assertEqual(load_labels(path), ["person", "bicycle", "car"])
        self.assertEqual(load_class_names(path), {0: "person", 1: "bicycle", 2: "car"})

    def test_load_metadata_yaml(self) -> None:
        path = self._write(
            "metadata.yaml",
            "task: detect\nnames:\n  0: person\n  1: 'traffic light'\n  2: \"car\"\nimgsz: [640, 640]\n",
        )
        self.assertEqual(load_labels(path), ["person", "traffic light", "car"])

    def test_non_contiguous_yaml_ids_rejected(self) -> None:
        path = self._write("metadata.yaml", "names:\n  0: person\n  2: car\n")
        with self.assertRaises(ConfigurationError):
            load_labels(path)

    def test_empty_label_file_rejected(self) -> None:
        path = self._write("labels.txt", "\n  \n")
        with self.assertRaises(ConfigurationError):
            load_labels(path)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_labels("missing/labels.txt")


if __name__ == "__main__":
    unittest.main()
