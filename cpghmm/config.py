"""Pipeline configuration shared by the CLI entry points."""

from dataclasses import dataclass, field

from cpghmm.core.encoding import DECODE_WINDOW_SIZE, TRAINING_CHUNK_SIZE
from cpghmm.inference.segmenter import IslandThresholds


DEFAULT_CONVERGENCE = 0.005
DEFAULT_MAX_ITERATIONS = 10


@dataclass
class PipelineConfig:
    """Sizes, training limits and island thresholds for one run."""
    chunk_size: int = TRAINING_CHUNK_SIZE
    window_size: int = DECODE_WINDOW_SIZE
    convergence: float = DEFAULT_CONVERGENCE
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    require_convergence: bool = False
    thresholds: IslandThresholds = field(default_factory=IslandThresholds)

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.window_size <= 0:
            raise ValueError(f"window_size must be positive, got {self.window_size}")
        if self.convergence <= 0:
            raise ValueError(f"convergence must be positive, got {self.convergence}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")

    @classmethod
    def from_args(cls, args) -> 'PipelineConfig':
        """Build from an argparse namespace; missing attributes keep their defaults."""
        thresholds = IslandThresholds(
            min_cg_content=getattr(args, 'min_cg_content', IslandThresholds.min_cg_content),
            min_oe_ratio=getattr(args, 'min_oe_ratio', IslandThresholds.min_oe_ratio),
            min_length=getattr(args, 'min_length', IslandThresholds.min_length),
        )
        return cls(
            chunk_size=getattr(args, 'chunk_size', TRAINING_CHUNK_SIZE),
            window_size=getattr(args, 'window_size', DECODE_WINDOW_SIZE),
            convergence=getattr(args, 'convergence', DEFAULT_CONVERGENCE),
            max_iterations=getattr(args, 'iterations', DEFAULT_MAX_ITERATIONS),
            require_convergence=getattr(args, 'require_convergence', False),
            thresholds=thresholds,
        )
