"""アップロード前の写真リサイズ方針（ティア別）"""

from __future__ import annotations

from dataclasses import dataclass

from beauty_track.domain.models import Plan


@dataclass(frozen=True)
class ResizePolicy:
    """長辺の最大ピクセル数と JPEG 品質"""

    max_long_side: int
    jpeg_quality: int


# free: 1080px / q70 でおおよそ 1/10 のサイズを目標にする
FREE_POLICY = ResizePolicy(max_long_side=1080, jpeg_quality=70)
# premium: 細部を残すため高解像度・ほぼ劣化なし
PREMIUM_POLICY = ResizePolicy(max_long_side=2560, jpeg_quality=92)


def policy_for(plan: Plan) -> ResizePolicy:
    """ティアに対応するリサイズ方針を返す"""
    if plan == Plan.PREMIUM:
        return PREMIUM_POLICY
    return FREE_POLICY

