#!/usr/bin/env python3
"""
AI Benchmark - Synthetic quantization-style scoring and plan recommendation

Runs a small battery of timed micro-benchmarks and turns elapsed time into
dimensionless scores:
- INT8: quantized multiply-accumulate over random int8 matrices
- FP16: half-precision trig kernel (needs a GPU context, else estimated)
- FP32: full-precision multiply + trig loop
- Single-core / multi-core: legacy CPU loops, one worker per logical core

The constants are uncalibrated placeholders (see settings.ScoreConstants);
scores are comparable between runs of this tool only.

Usage:
    result = run_ai_benchmark()
    result.print_summary()
    recommendation = get_recommendation(result)
    print(recommendation.plan, recommendation.message)
"""

import json
import logging
import math
import time
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import numpy as np

from devicebench import user_agent
from devicebench.device_detection import collect_signals
from devicebench.platform_signals import CapabilityProvider, PlatformSignals
from devicebench.settings import BenchmarkSettings, ScoreConstants, WorkloadSizes, get_settings

logger = logging.getLogger('devicebench.ai_benchmark')

Clock = Callable[[], float]

DEVICE_CLASSES = ('flagship', 'high-end', 'mid-range', 'entry-level')

# Weights of the composite score (INT8 matters most for edge inference)
INT8_WEIGHT = 0.5
FP16_WEIGHT = 0.3
FP32_WEIGHT = 0.2

# (device_class, min weighted score, min int8 score), first match wins
CLASS_THRESHOLDS = [
    ('flagship', 4000, 5000),
    ('high-end', 2500, 3000),
    ('mid-range', 1500, 0),
]

DEFAULT_BENCHMARK_CORES = 2
DEFAULT_BENCHMARK_RAM_GB = 4

# A timer can report zero for very fast runs; clamp so scores stay finite
MIN_DURATION_MS = 0.001


@dataclass(frozen=True)
class DeviceInfo:
    """Hardware description attached to a benchmark run"""
    processor: str
    gpu: str
    npu: Optional[str]
    ram_gb: float
    cores: int


@dataclass(frozen=True)
class BenchmarkResult:
    """Benchmark scores for one run"""
    int8_score: int
    fp16_score: int
    fp32_score: int
    overall_score: int
    single_core_score: int
    multi_core_score: int
    ai_score: int
    device_class: str  # 'flagship', 'high-end', 'mid-range', 'entry-level'
    benchmark_date: str  # ISO-8601, UTC
    device_info: DeviceInfo

    def to_dict(self) -> Dict[str, Any]:
        """JSON body accepted by the benchmark ingestion endpoint."""
        return {
            'int8Score': self.int8_score,
            'fp16Score': self.fp16_score,
            'fp32Score': self.fp32_score,
            'overallScore': self.overall_score,
            'singleCoreScore': self.single_core_score,
            'multiCoreScore': self.multi_core_score,
            'aiScore': self.ai_score,
            'deviceClass': self.device_class,
            'benchmarkDate': self.benchmark_date,
            'deviceInfo': {
                'processor': self.device_info.processor,
                'gpu': self.device_info.gpu,
                'npu': self.device_info.npu,
                'ramGB': self.device_info.ram_gb,
                'cores': self.device_info.cores,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BenchmarkResult':
        """Inverse of to_dict."""
        info = data.get('deviceInfo') or {}
        return cls(
            int8_score=int(data['int8Score']),
            fp16_score=int(data['fp16Score']),
            fp32_score=int(data['fp32Score']),
            overall_score=int(data['overallScore']),
            single_core_score=int(data.get('singleCoreScore', 0)),
            multi_core_score=int(data.get('multiCoreScore', 0)),
            ai_score=int(data.get('aiScore', data['overallScore'])),
            device_class=data['deviceClass'],
            benchmark_date=data['benchmarkDate'],
            device_info=DeviceInfo(
                processor=info.get('processor', 'Unknown CPU'),
                gpu=info.get('gpu', 'No GPU'),
                npu=info.get('npu'),
                ram_gb=info.get('ramGB', DEFAULT_BENCHMARK_RAM_GB),
                cores=int(info.get('cores', DEFAULT_BENCHMARK_CORES)),
            ),
        )

    def print_summary(self):
        """Print human-readable benchmark report"""
        print("\n" + "="*80)
        print("AI BENCHMARK REPORT")
        print("="*80)

        print(f"\n💻 DEVICE")
        print(f"  Processor: {self.device_info.processor}")
        print(f"  Cores: {self.device_info.cores}")
        print(f"  Memory: {self.device_info.ram_gb:g} GB")
        print(f"  GPU: {self.device_info.gpu}")
        print(f"  NPU: {self.device_info.npu or 'none detected'}")

        print(f"\n🧠 QUANTIZATION SCORES")
        print(f"  INT8: {format_score(self.int8_score)}")
        print(f"  FP16: {format_score(self.fp16_score)}")
        print(f"  FP32: {format_score(self.fp32_score)}")
        print(f"  Overall: {format_score(self.overall_score)}")

        print(f"\n⚡ CPU SCORES")
        print(f"  Single-core: {format_score(self.single_core_score)}")
        print(f"  Multi-core: {format_score(self.multi_core_score)}")

        recommendation = get_recommendation(self)
        print(f"\n🎯 CLASSIFICATION")
        print(f"  Device class: {self.device_class.upper()}")
        print(f"  Recommended plan: {recommendation.plan.upper()}")
        print(f"  {recommendation.message}")

        print("\n" + "="*80)

    def export_json(self, filepath: str):
        """Export result as JSON"""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Benchmark result exported to {filepath}")


@dataclass(frozen=True)
class Recommendation:
    """Plan suggestion derived from a benchmark"""
    plan: str  # 'free', 'compute', 'premium'
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {'plan': self.plan, 'message': self.message}


def _score(constant: float, duration_ms: float, scale: float) -> int:
    """score = constant / (duration / scale), rounded."""
    duration_ms = max(duration_ms, MIN_DURATION_MS)
    return round(constant / (duration_ms / scale))


def _elapsed_ms(clock: Clock, start: float) -> float:
    return (clock() - start) * 1000


def _core_workload(steps: int) -> float:
    """CPU-bound loop shared by the single- and multi-core probes."""
    result = 0.0
    for i in range(steps):
        result += math.sqrt(i) * math.sin(i) * math.cos(i)
    return result


def _has_render_context(signals: Optional[PlatformSignals]) -> bool:
    return bool(signals and signals.gpu_renderer)


def measure_int8_quantization(constants: Optional[ScoreConstants] = None,
                              workloads: Optional[WorkloadSizes] = None,
                              clock: Clock = time.perf_counter) -> int:
    """
    INT8 quantized matrix operations.

    Random values in the int8 range are multiplied and shifted right by 7
    to stay in range, the way quantized inference accumulates.
    """
    constants = constants or get_settings().constants
    workloads = workloads or get_settings().workloads
    size = workloads.int8_matrix
    rng = np.random.default_rng()

    start = clock()
    for _ in range(workloads.int8_iterations):
        a = rng.integers(-128, 128, size=(size, size), dtype=np.int32)
        b = rng.integers(-128, 128, size=(size, size), dtype=np.int32)
        _ = int(((a * b) >> 7).sum())
    duration = _elapsed_ms(clock, start)

    return _score(constants.int8_constant, duration, constants.int8_scale)


def measure_fp16_quantization(signals: Optional[PlatformSignals] = None,
                              constants: Optional[ScoreConstants] = None,
                              workloads: Optional[WorkloadSizes] = None,
                              clock: Clock = time.perf_counter) -> int:
    """
    FP16 half-precision kernel.

    Stands in for a fragment shader: every fragment accumulates
    sin(i*0.01)*cos(i*0.01) in float16. Needs a render context; without
    one the score is estimated from a fresh INT8 run.
    """
    constants = constants or get_settings().constants
    workloads = workloads or get_settings().workloads

    if not _has_render_context(signals):
        logger.warning("No GPU context available, estimating FP16 from INT8")
        return round(measure_int8_quantization(constants, workloads, clock) * constants.fp16_no_gpu_ratio)

    try:
        half_float = bool(signals.gpu_half_float)

        start = clock()
        steps = np.arange(workloads.fp16_steps, dtype=np.float16) * np.float16(0.01)
        phase = np.broadcast_to(steps, (workloads.fp16_fragments, workloads.fp16_steps))
        fragments = (np.sin(phase) * np.cos(phase)).sum(axis=1, dtype=np.float16)
        if not np.all(np.isfinite(fragments)):
            raise FloatingPointError("FP16 kernel produced non-finite output")
        duration = _elapsed_ms(clock, start)

        constant = constants.fp16_constant if half_float else constants.fp16_constant_no_half_float
        return _score(constant, duration, constants.fp16_scale)
    except Exception as e:
        logger.error(f"FP16 test failed: {e}")
        return round(measure_int8_quantization(constants, workloads, clock) * constants.fp16_error_ratio)


def measure_fp32_quantization(constants: Optional[ScoreConstants] = None,
                              workloads: Optional[WorkloadSizes] = None,
                              clock: Clock = time.perf_counter) -> int:
    """FP32 full-precision operations (most accurate, slowest)."""
    constants = constants or get_settings().constants
    workloads = workloads or get_settings().workloads
    size = workloads.fp32_matrix
    rng = np.random.default_rng()

    start = clock()
    for _ in range(workloads.fp32_iterations):
        a = (rng.random((size, size), dtype=np.float32) * 2.0 - 1.0).astype(np.float32)
        b = (rng.random((size, size), dtype=np.float32) * 2.0 - 1.0).astype(np.float32)
        _ = float((a * b + np.sin(a) * np.cos(b)).sum(dtype=np.float32))
    duration = _elapsed_ms(clock, start)

    return _score(constants.fp32_constant, duration, constants.fp32_scale)


def measure_single_core(constants: Optional[ScoreConstants] = None,
                        workloads: Optional[WorkloadSizes] = None,
                        clock: Clock = time.perf_counter) -> int:
    constants = constants or get_settings().constants
    workloads = workloads or get_settings().workloads

    start = clock()
    _core_workload(workloads.single_core_steps)
    duration = _elapsed_ms(clock, start)

    return _score(constants.single_core_constant, duration, constants.single_core_scale)


def measure_multi_core(cores: int,
                       constants: Optional[ScoreConstants] = None,
                       workloads: Optional[WorkloadSizes] = None,
                       clock: Clock = time.perf_counter,
                       worker_mode: Optional[str] = None) -> int:
    """
    One worker per logical core, each running the same loop.

    Timing stops when every worker has finished. If workers cannot be
    created or one of them fails, the score is estimated as
    single_core * cores * 0.8.

    Args:
        cores: Number of workers to start
        worker_mode: 'process' (default) or 'thread'
    """
    settings = get_settings()
    constants = constants or settings.constants
    workloads = workloads or settings.workloads
    worker_mode = worker_mode or settings.worker_mode

    logger.info(f"Running multi-core test with {cores} cores ({worker_mode} workers)...")

    executor_cls = ThreadPoolExecutor if worker_mode == 'thread' else ProcessPoolExecutor

    try:
        start = clock()
        with executor_cls(max_workers=cores) as executor:
            futures = [executor.submit(_core_workload, workloads.multi_core_steps) for _ in range(cores)]
            done, _ = wait(futures)
            for future in done:
                future.result()
        duration = _elapsed_ms(clock, start)

        return _score(cores * constants.multi_core_constant, duration, constants.multi_core_scale)
    except Exception as e:
        logger.error(f"Multi-core test failed, falling back to single-core estimate: {e}")
        return round(measure_single_core(constants, workloads, clock) * cores * constants.multi_core_fallback_ratio)


def measure_ai_performance(signals: Optional[PlatformSignals] = None,
                           constants: Optional[ScoreConstants] = None,
                           workloads: Optional[WorkloadSizes] = None,
                           clock: Clock = time.perf_counter) -> int:
    """
    Legacy single-number AI score (GPU trig kernel in float32).

    Not part of run_ai_benchmark; kept for callers of the old API.
    """
    constants = constants or get_settings().constants
    workloads = workloads or get_settings().workloads

    if not _has_render_context(signals):
        logger.warning("No GPU context available, using CPU fallback")
        return round(measure_single_core(constants, workloads, clock) * constants.ai_no_gpu_ratio)

    try:
        start = clock()
        steps = np.arange(workloads.ai_steps, dtype=np.float32)
        _ = float((np.sin(steps) * np.cos(steps)).sum())
        duration = _elapsed_ms(clock, start)

        return _score(constants.ai_constant, duration, constants.ai_scale)
    except Exception as e:
        logger.error(f"AI benchmark failed: {e}")
        return round(measure_single_core(constants, workloads, clock) * constants.ai_error_ratio)


def weighted_score(int8_score: float, fp16_score: float, fp32_score: float) -> float:
    return (int8_score * INT8_WEIGHT) + (fp16_score * FP16_WEIGHT) + (fp32_score * FP32_WEIGHT)


def classify_ai_device(int8_score: float, fp16_score: float, fp32_score: float) -> str:
    """
    Bucket a device by quantization performance.

    The top two classes also need a minimum INT8 score, so a strong FP
    path cannot carry a weak INT8 path into them.
    """
    weighted = weighted_score(int8_score, fp16_score, fp32_score)

    for device_class, min_weighted, min_int8 in CLASS_THRESHOLDS:
        if weighted >= min_weighted and int8_score >= min_int8:
            return device_class
    return 'entry-level'


def classify_device(single_core: float, multi_core: float, ai_score: float) -> str:
    """Legacy classifier: derives FP16/FP32 from a single AI score."""
    return classify_ai_device(ai_score, ai_score * 0.8, ai_score * 0.6)


def _run_probe(name: str, probe: Callable[[], int], fallback: Callable[[], int]) -> int:
    logger.info(f"Testing {name} performance...")
    try:
        return probe()
    except Exception as e:
        logger.error(f"{name} probe failed, using fallback: {e}")
        return fallback()


def run_ai_benchmark(provider: Optional[CapabilityProvider] = None,
                     settings: Optional[BenchmarkSettings] = None,
                     clock: Optional[Clock] = None) -> BenchmarkResult:
    """
    Run every probe in sequence and classify the device.

    Blocks until all probes, including the multi-core fan-out, have
    finished. Never raises: an unavailable signal or failing probe is
    replaced by its fallback value.

    Args:
        provider: Signal source, defaults to the local host
        settings: Constants and workload sizes, defaults to get_settings()
        clock: Seconds-based timer, defaults to time.perf_counter

    Returns:
        BenchmarkResult with all scores and the device class
    """
    settings = settings or get_settings()
    clock = clock or time.perf_counter
    constants, workloads = settings.constants, settings.workloads

    logger.info("Starting AI quantization benchmark...")

    signals = collect_signals(provider)
    cores = signals.hardware_concurrency or DEFAULT_BENCHMARK_CORES
    ram_gb = signals.device_memory_gb or DEFAULT_BENCHMARK_RAM_GB
    gpu = signals.gpu_renderer or 'No GPU'
    npu = user_agent.npu_hint(signals.user_agent, signals.ml_api_available)
    processor = signals.processor or user_agent.processor_family(signals.user_agent)

    int8_score = _run_probe(
        'INT8 quantization',
        lambda: measure_int8_quantization(constants, workloads, clock),
        lambda: 0,
    )
    fp16_score = _run_probe(
        'FP16 (half-precision)',
        lambda: measure_fp16_quantization(signals, constants, workloads, clock),
        lambda: round(int8_score * constants.fp16_error_ratio),
    )
    fp32_score = _run_probe(
        'FP32 (full-precision)',
        lambda: measure_fp32_quantization(constants, workloads, clock),
        lambda: round(int8_score * 0.6),
    )

    overall_score = round(weighted_score(int8_score, fp16_score, fp32_score))

    single_core_score = _run_probe(
        'single-core',
        lambda: measure_single_core(constants, workloads, clock),
        lambda: 0,
    )
    multi_core_score = _run_probe(
        'multi-core',
        lambda: measure_multi_core(cores, constants, workloads, clock, settings.worker_mode),
        lambda: round(single_core_score * cores * constants.multi_core_fallback_ratio),
    )

    device_class = classify_ai_device(int8_score, fp16_score, fp32_score)

    result = BenchmarkResult(
        int8_score=int8_score,
        fp16_score=fp16_score,
        fp32_score=fp32_score,
        overall_score=overall_score,
        single_core_score=single_core_score,
        multi_core_score=multi_core_score,
        ai_score=overall_score,
        device_class=device_class,
        benchmark_date=datetime.now(timezone.utc).isoformat(),
        device_info=DeviceInfo(
            processor=processor,
            gpu=gpu,
            npu=npu,
            ram_gb=ram_gb,
            cores=cores,
        ),
    )

    logger.info(f"Benchmark complete: overall={overall_score}, class={device_class}")
    return result


def format_score(score: float) -> str:
    """Display form of a score: 10000 and up as 'N.NK'."""
    if score >= 10000:
        return f"{score / 1000:.1f}K"
    return str(int(score))


def get_recommendation(result: BenchmarkResult) -> Recommendation:
    """
    Map a benchmark to a plan and a message.

    INT8 above 3000 and FP16 above 2000 pick the wording for the
    middle classes; the plan depends on device_class alone.
    """
    int8 = result.int8_score or 0
    fp16 = result.fp16_score or 0
    has_good_int8 = int8 > 3000
    has_fp16_support = fp16 > 2000

    if result.device_class == 'flagship':
        return Recommendation(
            plan='free',
            message=(f"Excellent AI acceleration! INT8: {format_score(int8)}, FP16: {format_score(fp16)}. "
                     f"Your device can run quantized models locally with strong inference performance.")
        )
    if result.device_class == 'high-end':
        mode = 'Local INT8 models recommended' if has_good_int8 else 'Hybrid mode with cloud FP16'
        return Recommendation(
            plan='compute',
            message=f"Great quantization support! INT8: {format_score(int8)}. {mode} for optimal performance."
        )
    if result.device_class == 'mid-range':
        models = 'FP16 models via cloud' if has_fp16_support else 'INT8 quantized models'
        return Recommendation(
            plan='compute',
            message=f"Decent AI capabilities (INT8: {format_score(int8)}). {models} recommended."
        )
    return Recommendation(
        plan='premium',
        message=(f"Limited quantization support (INT8: {format_score(int8)}). "
                 f"Cloud-based FP16/FP32 inference recommended for best accuracy.")
    )
