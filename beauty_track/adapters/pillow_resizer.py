"""Pillow Photo Resizer Adapter

アップロード前に写真を長辺 max_long_side 以下へ縮小し、JPEG で再圧縮する。
拡大はしない。EXIF の回転情報は画素に反映してから保存する。
"""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps

from beauty_track.domain.photo_policy import ResizePolicy
from beauty_track.domain.ports import PhotoResizer

logger = logging.getLogger(__name__)


class PillowPhotoResizer(PhotoResizer):
    """Pillow を使った PhotoResizer 実装"""

    def resize(self, source_path: str, policy: ResizePolicy) -> bytes:
        with Image.open(source_path) as opened:
            img = ImageOps.exif_transpose(opened)
            if img.mode != "RGB":
                img = img.convert("RGB")
            original_size = img.size
            # thumbnail はアスペクト比を保ち、元画像より大きくはしない
            img.thumbnail(
                (policy.max_long_side, policy.max_long_side), Image.Resampling.LANCZOS
            )

            buf = io.BytesIO()
            img.save(buf, format="JPEG", quality=policy.jpeg_quality, optimize=True)

        content = buf.getvalue()
        logger.debug(
            "Resized %s: %dx%d -> %dx%d, quality=%d, %d bytes",
            source_path,
            original_size[0],
            original_size[1],
            img.size[0],
            img.size[1],
            policy.jpeg_quality,
            len(content),
        )
        return content
