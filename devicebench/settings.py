"""
Settings for device detection and benchmarking.

Scoring constants are calibration placeholders. They are kept here so a
deployment can retune them through environment variables without touching
the probes.
"""

import os
from dataclasses import dataclass, field


@dataclass
class ScoreConstants:
    """Numerators and duration scales for score = constant / (ms / scale)."""
    int8_constant: float = float(os.getenv('DEVICEBENCH_INT8_CONSTANT', '50000'))
    int8_scale: float = 100.0
    fp16_constant: float = float(os.getenv('DEVICEBENCH_FP16_CONSTANT', '40000'))
    fp16_constant_no_half_float: float = float(os.getenv('DEVICEBENCH_FP16_FALLBACK_CONSTANT', '30000'))
    fp16_scale: float = 10.0
    fp32_constant: float = float(os.getenv('DEVICEBENCH_FP32_CONSTANT', '30000'))
    fp32_scale: float = 100.0
    single_core_constant: float = float(os.getenv('DEVICEBENCH_SINGLE_CORE_CONSTANT', '10000'))
    single_core_scale: float = 100.0
    multi_core_constant: float = 10000.0  # multiplied by core count
    multi_core_scale: float = 100.0
    ai_constant: float = 15000.0
    ai_scale: float = 10.0

    # Fallback ratios when a probe cannot run
    fp16_no_gpu_ratio: float = 0.7
    fp16_error_ratio: float = 0.75
    multi_core_fallback_ratio: float = 0.8
    ai_no_gpu_ratio: float = 0.5
    ai_error_ratio: float = 0.7


@dataclass
class WorkloadSizes:
    """Fixed iteration counts for each synthetic workload."""
    int8_matrix: int = 512
    int8_iterations: int = 100
    fp16_steps: int = 500
    fp16_fragments: int = 64 * 64
    fp32_matrix: int = 256
    fp32_iterations: int = 50
    single_core_steps: int = 1_000_000
    multi_core_steps: int = 500_000
    ai_steps: int = 1000


@dataclass
class BenchmarkSettings:
    """Runtime settings for the benchmark and the ingestion client."""
    api_url: str = os.getenv('DEVICEBENCH_API_URL', 'http://100.110.82.181:8002')
    api_timeout: float = float(os.getenv('DEVICEBENCH_API_TIMEOUT', '30'))
    store_path: str = os.getenv('DEVICEBENCH_STORE_PATH', './devicebench.db')
    log_level: str = os.getenv('DEVICEBENCH_LOG_LEVEL', 'INFO')
    worker_mode: str = os.getenv('DEVICEBENCH_WORKER_MODE', 'process')  # 'process' or 'thread'
    geekbench_proxy: str = os.getenv('DEVICEBENCH_GEEKBENCH_PROXY', 'http://100.110.82.181:8002/api/proxy/geekbench')

    constants: ScoreConstants = field(default_factory=ScoreConstants)
    workloads: WorkloadSizes = field(default_factory=WorkloadSizes)


# Singleton instance
_settings = None


def get_settings() -> BenchmarkSettings:
    """Get settings singleton."""
    global _settings
    if _settings is None:
        _settings = BenchmarkSettings()
    return _settings
