import unittest

import numpy as np

from yolox_kit.viewport import flip_y, input_to_image_matrix, scale_matrix, to_image_xyxy, to_viewport


class TestViewportMapping(unittest.TestCase):
    def test_flip_y(self) -> None:
        self.assertEqual(flip_y((0.1, 0.2, 0.3, 0.4)), (0.1, 0.4, 0.3, 0.4))

    def test_identity_without_flip(self) -> None:
        rect = (0.1, 0.2, 0.3, 0.4)
        self.assertTrue(np.allclose(to_viewport(rect, np.eye(3), flip=False), rect))

    def test_scale_with_flip(self) -> None:
        out = to_viewport((0.25, 0.0, 0.5, 0.25), scale_matrix(200.0, 100.0))
        self.assertTrue(np.allclose(out, (50.0, 75.0, 100.0, 25.0)))

    def test_bad_matrix_shape(self) -> None:
        with self.assertRaises(ValueError):
            to_viewport((0.0, 0.0, 1.0, 1.0), np.eye(4))

    def test_letterbox_inverse(self) -> None:
        # 1280x720 image letterboxed into 640x640: ratio 0.5, 140 px pad on top.
        matrix = input_to_image_matrix((640, 640), ratio=(0.5, 0.5), pad=(0.0, 140.0))
        xyxy = to_image_xyxy((0.0, 140.0 / 640, 0.5, 180.0 / 640), matrix, (1280, 720))
        self.assertTrue(np.allclose(xyxy, (0.0, 0.0, 640.0, 360.0)))

    def test_image_boxes_clipped(self) -> None:
        matrix = input_to_image_matrix((640, 640))
        xyxy = to_image_xyxy((-0.1, -0.1, 1.5, 1.5), matrix, (640, 640))
        self.assertEqual(xyxy, (0.0, 0.0, 639.0, 639.0))


if __name__ == "__main__":
    unittest.main()
