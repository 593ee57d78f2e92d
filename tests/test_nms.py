import unittest

import numpy as np

from yolox_kit.nms import NMSConfig, iou_xywh, nms, sort_by_probability


def _reference_nms(rects, threshold, k):
    kept = []
    for i, rect in enumerate(rects):
        if len(kept) == k:
            break
        if all(iou_xywh(rect, rects[j]) <= np.float32(threshold) for j in kept):
            kept.append(i)
    return kept


class TestIoU(unittest.TestCase):
    def test_identical_boxes(self) -> None:
        self.assertAlmostEqual(iou_xywh((0.1, 0.1, 0.2, 0.2), (0.1, 0.1, 0.2, 0.2)), 1.0)

    def test_half_overlap(self) -> None:
        self.assertAlmostEqual(iou_xywh((0.0, 0.0, 2.0, 1.0), (0.0, 0.0, 1.0, 1.0)), 0.5)

    def test_disjoint_and_touching(self) -> None:
        self.assertEqual(iou_xywh((0.0, 0.0, 1.0, 1.0), (2.0, 2.0, 1.0, 1.0)), 0.0)
        self.assertEqual(iou_xywh((0.0, 0.0, 1.0, 1.0), (1.0, 0.0, 1.0, 1.0)), 0.0)

    def test_zero_area(self) -> None:
        self.assertEqual(iou_xywh((0.5, 0.5, 0.0, 0.0), (0.0, 0.0, 1.0, 1.0)), 0.0)
        self.assertEqual(iou_xywh((0.5, 0.5, 0.0, 0.0), (0.5, 0.5, 0.0, 0.0)), 0.0)


class TestSort(unittest.TestCase):
    def test_descending_and_stable(self) -> None:
        probs = np.array([0.3, 0.9, 0.5, 0.9, 0.1], dtype=np.float32)
        self.assertEqual(sort_by_probability(probs).tolist(), [1, 3, 2, 0, 4])


class TestNMS(unittest.TestCase):
    def test_empty(self) -> None:
        keep = nms(np.zeros((0, 4), dtype=np.float32), NMSConfig())
        self.assertEqual(keep.shape, (0,))

    def test_overlapping_box_suppressed(self) -> None:
        rects = np.array([[0.1, 0.1, 0.4, 0.4], [0.1, 0.1, 0.4, 0.4], [0.6, 0.6, 0.2, 0.2]], dtype=np.float32)
        keep = nms(rects, NMSConfig(iou_threshold=0.45))
        self.assertEqual(keep.tolist(), [0, 2])

    def test_iou_equal_to_threshold_not_suppressed(self) -> None:
        rects = np.array([[0.0, 0.0, 0.5, 0.25], [0.0, 0.0, 0.25, 0.25]], dtype=np.float32)
        self.assertAlmostEqual(iou_xywh(rects[0], rects[1]), 0.5)
        keep = nms(rects, NMSConfig(iou_threshold=0.5))
        self.assertEqual(keep.tolist(), [0, 1])

    def test_capacity_limits_output(self) -> None:
        rects = np.array([[0.1 * i, 0.0, 0.05, 0.05] for i in range(8)], dtype=np.float32)
        keep = nms(rects, NMSConfig(iou_threshold=0.45, max_detections=3))
        self.assertEqual(keep.tolist(), [0, 1, 2])

    def test_zero_area_boxes_never_suppress(self) -> None:
        rects = np.array([[0.5, 0.5, 0.0, 0.0], [0.4, 0.4, 0.2, 0.2], [0.5, 0.5, 0.0, 0.0]], dtype=np.float32)
        keep = nms(rects, NMSConfig(iou_threshold=0.0))
        self.assertEqual(keep.tolist(), [0, 1, 2])

    def test_suppressed_box_does_not_suppress(self) -> None:
        # B overlaps A and C; C overlaps only B. A suppresses B, so C survives.
        rects = np.array(
            [[0.0, 0.0, 0.4, 0.4], [0.1, 0.0, 0.4, 0.4], [0.2, 0.0, 0.4, 0.4]],
            dtype=np.float32,
        )
        self.assertGreater(iou_xywh(rects[0], rects[1]), 0.45)
        self.assertGreater(iou_xywh(rects[1], rects[2]), 0.45)
        self.assertLessEqual(iou_xywh(rects[0], rects[2]), 0.45)
        keep = nms(rects, NMSConfig(iou_threshold=0.45))
        self.assertEqual(keep.tolist(), [0, 2])

    def test_matches_greedy_reference(self) -> None:
        rng = np.random.default_rng(7)
        for _ in range(20):
            n = int(rng.integers(1, 60))
            xy = rng.uniform(0.0, 0.8, size=(n, 2))
            wh = rng.uniform(0.0, 0.3, size=(n, 2))
            rects = np.concatenate([xy, wh], axis=1).astype(np.float32)
            k = int(rng.integers(1, 20))
            keep = nms(rects, NMSConfig(iou_threshold=0.3, max_detections=k))
            self.assertEqual(keep.tolist(), _reference_nms(rects, 0.3, k))

            for a in keep:
                for b in keep:
                    if a != b:
                        self.assertLessEqual(iou_xywh(rects[a], rects[b]), 0.3 + 1e-6)


if __name__ == "__main__":
    unittest.main()
