from __future__ import annotations

"""
config.py

메모리 시뮬레이터의 실험 설정(Experiment Config) 모듈입니다.

이 파일은 세션의 동작을 결정하는 입력 파라미터들을 한 곳에 모아,
- 같은 설정이면 같은 조건의 실험을 재현할 수 있고(재현성),
- 실행 전에 잘못된 설정을 조기에 잡아내며(fail fast),
- 파생 값(레벨별 block 개수)을 일관되게 계산하도록 합니다.

계약(Contract)
--------------
- 세션을 만들기 전에 `SimConfig.prepare()`를 호출하는 것을 권장합니다.
  (MemorySystem.from_config()는 알아서 호출합니다.)
  prepare()는
  1) cache_profile 프리셋을 적용하고,
  2) validate()로 값 범위를 검증합니다.

재현성에서 중요한 노브(knob)
---------------------------
- `rng_seed`: 워크로드 난수 시드
- `pool_capacity` + `strategy`: 단편화 결과를 좌우
- cache geometry(`l1_capacity`, `l1_block_size`, `l2_capacity`, `l2_block_size`)

자주 생기는 실수(Common pitfalls)
---------------------------------
- `cache_profile` 오타:
  알 수 없는 프로파일이면 아무 변화 없이 필드 값이 유지됩니다("custom"과 같음).
- 코어 allocator는 capacity 0을 빈 풀로 받아주지만, 설정 단계에서는 거부합니다.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict

from placement import parse_strategy


# 프리셋: (l1_capacity, l1_block_size, l2_capacity, l2_block_size)
CACHE_PROFILES: Dict[str, tuple] = {
    "default": (1024, 32, 8192, 64),
    "tiny": (128, 16, 512, 32),
    "large": (32768, 64, 262144, 128),
}


@dataclass
class SimConfig:
    """
    실험 설정 컨테이너.

    1) Pool: 풀 크기와 배치 정책
    2) Cache geometry: L1/L2 용량과 block 크기
    3) RNG: 워크로드 재현용 시드
    """

    # ---------------------------------------------------------------------
    # 1) Pool
    # ---------------------------------------------------------------------
    pool_capacity: int = 1024

    # first_fit | best_fit | worst_fit (별칭 first/ff, best/bf, worst/wf 허용)
    strategy: str = "first_fit"

    # ---------------------------------------------------------------------
    # 2) Cache geometry (bytes)
    # ---------------------------------------------------------------------
    l1_capacity: int = 1024
    l1_block_size: int = 32
    l2_capacity: int = 8192
    l2_block_size: int = 64

    # 프리셋 이름: default | tiny | large | custom
    cache_profile: str = "custom"

    # ---------------------------------------------------------------------
    # 3) RNG
    # ---------------------------------------------------------------------
    rng_seed: int = 42

    _validated: bool = field(default=False, init=False, repr=False)

    # ---------------------------------------------------------------------
    # 파생값
    # ---------------------------------------------------------------------

    @property
    def l1_blocks(self) -> int:
        return int(self.l1_capacity) // int(self.l1_block_size) if self.l1_block_size else 0

    @property
    def l2_blocks(self) -> int:
        return int(self.l2_capacity) // int(self.l2_block_size) if self.l2_block_size else 0

    # ---------------------------------------------------------------------
    # 검증 / 준비
    # ---------------------------------------------------------------------

    def validate(self) -> None:
        """
        설정 값의 범위를 검증합니다.

        Raises
        ------
        ValueError:
            값이 허용 범위를 벗어나면 예외를 발생시킵니다.
        """
        if self.pool_capacity <= 0:
            raise ValueError("pool_capacity 는 양수여야 합니다")

        # 모르는 이름이면 parse_strategy가 ValueError
        self.strategy = parse_strategy(self.strategy).value

        for k in ("l1_block_size", "l2_block_size"):
            if getattr(self, k) <= 0:
                raise ValueError(f"{k} 는 양수여야 합니다")

        if self.l1_blocks < 1 or self.l2_blocks < 1:
            raise ValueError("cache 용량은 block 크기 이상이어야 합니다")

        self._validated = True

    def apply_cache_profile(self) -> None:
        """
        cache_profile 프리셋으로 cache geometry 필드를 덮어씁니다.

        - 알려진 프로파일(default/tiny/large)이면 4개 필드를 설정
        - custom 또는 알 수 없는 이름이면 아무것도 하지 않습니다(기존 값 유지)
        """
        p = (self.cache_profile or "custom").lower()
        preset = CACHE_PROFILES.get(p)
        if preset is None:
            return
        self.l1_capacity, self.l1_block_size, self.l2_capacity, self.l2_block_size = preset

    # ---------------------------------------------------------------------
    # 직렬화(실험 메타데이터 저장용)
    # ---------------------------------------------------------------------

    def to_dict(self) -> Dict:
        d = asdict(self)
        d.pop("_validated", None)
        return d

    def prepare(self) -> None:
        """프리셋 적용 + 검증."""
        self.apply_cache_profile()
        self.validate()
