"""
Tests for the AI benchmark probes, classification and recommendations.

A fake clock advances by a fixed step on every read, so each probe sees a
known duration and produces a known score.
"""

import json

import pytest

from devicebench import ai_benchmark
from devicebench.ai_benchmark import (
    BenchmarkResult,
    DEVICE_CLASSES,
    classify_ai_device,
    classify_device,
    format_score,
    get_recommendation,
    run_ai_benchmark,
    weighted_score,
)
from devicebench.platform_signals import (
    CapabilityProvider,
    PlatformSignals,
    StaticCapabilityProvider,
)
from devicebench.settings import BenchmarkSettings, ScoreConstants, WorkloadSizes


class FakeClock:
    """Returns 0, step, 2*step, ... seconds."""

    def __init__(self, step: float):
        self.step = step
        self.now = 0.0

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


class BrokenProvider(CapabilityProvider):
    def collect(self):
        raise RuntimeError("navigator unavailable")


def tiny_settings() -> BenchmarkSettings:
    return BenchmarkSettings(
        worker_mode='thread',
        constants=ScoreConstants(),
        workloads=WorkloadSizes(
            int8_matrix=8,
            int8_iterations=2,
            fp16_steps=10,
            fp16_fragments=4,
            fp32_matrix=8,
            fp32_iterations=2,
            single_core_steps=100,
            multi_core_steps=100,
            ai_steps=10,
        ),
    )


GPU_SIGNALS = PlatformSignals(
    user_agent='Mozilla/5.0 (Windows NT 10.0; Win64; x64) Intel',
    hardware_concurrency=4,
    device_memory_gb=8,
    gpu_renderer='NVIDIA GeForce RTX 4090',
    gpu_half_float=True,
)


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------

def test_int8_score_from_duration():
    settings = tiny_settings()
    # 100ms -> 50000 / (100 / 100)
    score = ai_benchmark.measure_int8_quantization(settings.constants, settings.workloads, FakeClock(0.1))
    assert score == 50000


def test_fp16_uses_half_float_constant():
    settings = tiny_settings()
    # 10ms -> 40000 / (10 / 10)
    score = ai_benchmark.measure_fp16_quantization(GPU_SIGNALS, settings.constants, settings.workloads,
                                                   FakeClock(0.01))
    assert score == 40000

    no_half = PlatformSignals(gpu_renderer='Mesa Intel(R) UHD Graphics', gpu_half_float=False)
    score = ai_benchmark.measure_fp16_quantization(no_half, settings.constants, settings.workloads,
                                                   FakeClock(0.01))
    assert score == 30000


def test_fp16_without_gpu_context_estimates_from_int8():
    settings = tiny_settings()
    score = ai_benchmark.measure_fp16_quantization(PlatformSignals(), settings.constants, settings.workloads,
                                                   FakeClock(0.1))
    assert score == round(50000 * 0.7)


def test_fp16_kernel_failure_estimates_from_int8(monkeypatch):
    settings = tiny_settings()

    def broken_sin(*args, **kwargs):
        raise FloatingPointError("kernel failed")

    monkeypatch.setattr(ai_benchmark.np, 'sin', broken_sin)
    score = ai_benchmark.measure_fp16_quantization(GPU_SIGNALS, settings.constants, settings.workloads,
                                                   FakeClock(0.1))
    assert score == round(50000 * 0.75)


def test_fp32_and_single_core_scores():
    settings = tiny_settings()
    assert ai_benchmark.measure_fp32_quantization(settings.constants, settings.workloads, FakeClock(0.1)) == 30000
    assert ai_benchmark.measure_single_core(settings.constants, settings.workloads, FakeClock(0.1)) == 10000


def test_multi_core_waits_for_every_worker():
    settings = tiny_settings()
    score = ai_benchmark.measure_multi_core(4, settings.constants, settings.workloads, FakeClock(0.1), 'thread')
    # 4 cores * 10000 / (100 / 100)
    assert score == 40000


def test_multi_core_falls_back_when_workers_fail(monkeypatch):
    settings = tiny_settings()

    class BrokenExecutor:
        def __init__(self, *args, **kwargs):
            raise OSError("cannot start workers")

    monkeypatch.setattr(ai_benchmark, 'ThreadPoolExecutor', BrokenExecutor)
    score = ai_benchmark.measure_multi_core(4, settings.constants, settings.workloads, FakeClock(0.1), 'thread')
    assert score == round(10000 * 4 * 0.8)


def test_zero_duration_gives_finite_score():
    settings = tiny_settings()
    score = ai_benchmark.measure_single_core(settings.constants, settings.workloads, lambda: 5.0)
    assert score > 0


def test_legacy_ai_probe_falls_back_without_gpu():
    settings = tiny_settings()
    assert ai_benchmark.measure_ai_performance(GPU_SIGNALS, settings.constants, settings.workloads,
                                               FakeClock(0.01)) == 15000
    assert ai_benchmark.measure_ai_performance(PlatformSignals(), settings.constants, settings.workloads,
                                               FakeClock(0.1)) == 5000


# ---------------------------------------------------------------------------
# Full run
# ---------------------------------------------------------------------------

def test_run_ai_benchmark_with_gpu():
    result = run_ai_benchmark(StaticCapabilityProvider(GPU_SIGNALS), tiny_settings(), FakeClock(0.1))

    assert result.int8_score == 50000
    assert result.fp16_score == 4000
    assert result.fp32_score == 30000
    assert result.overall_score == round(50000 * 0.5 + 4000 * 0.3 + 30000 * 0.2)
    assert result.ai_score == result.overall_score
    assert result.single_core_score == 10000
    assert result.multi_core_score == 40000
    assert result.device_class == 'flagship'

    info = result.device_info
    assert info.cores == 4
    assert info.ram_gb == 8
    assert info.gpu == 'NVIDIA GeForce RTX 4090'
    assert info.processor == 'Intel'
    assert info.npu is None
    assert result.benchmark_date.endswith('+00:00')


def test_run_ai_benchmark_never_raises_when_provider_fails():
    result = run_ai_benchmark(BrokenProvider(), tiny_settings(), FakeClock(0.1))

    assert result.device_info.cores == 2
    assert result.device_info.ram_gb == 4
    assert result.device_info.gpu == 'No GPU'
    assert result.device_info.processor == 'Unknown CPU'
    assert result.fp16_score == round(result.int8_score * 0.7)
    assert result.multi_core_score == 20000  # 2 cores


def test_run_ai_benchmark_survives_probe_exception(monkeypatch):
    def broken_int8(*args, **kwargs):
        raise MemoryError("no scratch space")

    monkeypatch.setattr(ai_benchmark, 'measure_int8_quantization', broken_int8)
    result = run_ai_benchmark(StaticCapabilityProvider(GPU_SIGNALS), tiny_settings(), FakeClock(0.1))

    assert result.int8_score == 0
    assert result.device_class in DEVICE_CLASSES
    assert result.overall_score == round(weighted_score(0, result.fp16_score, result.fp32_score))


def test_npu_hint_reaches_device_info():
    signals = PlatformSignals(user_agent='Mozilla/5.0 (Linux; Android 14; Snapdragon 8 Gen 3) Mobile')
    result = run_ai_benchmark(StaticCapabilityProvider(signals), tiny_settings(), FakeClock(0.1))
    assert result.device_info.npu == 'Qualcomm Hexagon NPU'
    assert result.device_info.processor == 'Snapdragon'


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def test_reference_run_is_high_end():
    # weighted = 3000 + 750 + 200 = 3950, below the flagship composite floor
    assert weighted_score(6000, 2500, 1000) == pytest.approx(3950)
    assert classify_ai_device(6000, 2500, 1000) == 'high-end'


def test_class_thresholds_are_inclusive():
    assert classify_ai_device(5000, 5000, 0) == 'flagship'       # weighted 4000
    assert classify_ai_device(4999, 10000, 10000) == 'high-end'  # int8 floor
    assert classify_ai_device(3000, 3333.34, 0) == 'high-end'    # weighted >= 2500
    assert classify_ai_device(2999, 10000, 10000) == 'mid-range'
    assert classify_ai_device(3000, 0, 0) == 'mid-range'         # weighted 1500
    assert classify_ai_device(2999, 0, 0) == 'entry-level'


def test_class_is_monotonic_in_weighted_score():
    rank = {name: i for i, name in enumerate(reversed(DEVICE_CLASSES))}
    samples = [(i8, f16, f32)
               for i8 in range(0, 10001, 1000)
               for f16 in range(0, 8001, 2000)
               for f32 in range(0, 8001, 4000)]

    for a in samples:
        for b in samples:
            if weighted_score(*b) > weighted_score(*a) and b[0] >= a[0]:
                assert rank[classify_ai_device(*b)] >= rank[classify_ai_device(*a)], (a, b)


def test_legacy_classifier():
    # ai=6000 -> fp16 4800, fp32 3600 -> weighted 5160
    assert classify_device(0, 0, 6000) == 'flagship'
    assert classify_device(0, 0, 1000) == 'entry-level'


# ---------------------------------------------------------------------------
# Formatting and recommendations
# ---------------------------------------------------------------------------

def test_format_score():
    assert format_score(9999) == '9999'
    assert format_score(10000) == '10.0K'
    assert format_score(25500) == '25.5K'
    assert format_score(0) == '0'


def _result(int8, fp16, fp32, device_class=None):
    return BenchmarkResult(
        int8_score=int8,
        fp16_score=fp16,
        fp32_score=fp32,
        overall_score=round(weighted_score(int8, fp16, fp32)),
        single_core_score=0,
        multi_core_score=0,
        ai_score=round(weighted_score(int8, fp16, fp32)),
        device_class=device_class or classify_ai_device(int8, fp16, fp32),
        benchmark_date='2026-10-19T00:00:00+00:00',
        device_info=ai_benchmark.DeviceInfo(processor='Intel', gpu='No GPU', npu=None, ram_gb=8, cores=4),
    )


def test_recommendation_per_class():
    flagship = get_recommendation(_result(12000, 6000, 3000))
    assert flagship.plan == 'free'
    assert 'INT8: 12.0K' in flagship.message
    assert 'FP16: 6000' in flagship.message

    high_end = get_recommendation(_result(6000, 2500, 1000))
    assert high_end.plan == 'compute'
    assert 'Local INT8 models recommended' in high_end.message

    mid_range = get_recommendation(_result(2000, 2500, 1000))
    assert mid_range.plan == 'compute'
    assert 'FP16 models via cloud' in mid_range.message

    mid_range_low_fp16 = get_recommendation(_result(3000, 100, 100))
    assert 'INT8 quantized models' in mid_range_low_fp16.message

    entry = get_recommendation(_result(500, 100, 100))
    assert entry.plan == 'premium'
    assert 'Limited quantization support (INT8: 500)' in entry.message


def test_result_json_shape(tmp_path):
    result = _result(6000, 2500, 1000)
    path = tmp_path / 'result.json'
    result.export_json(str(path))

    data = json.loads(path.read_text())
    assert data['overallScore'] == 3950
    assert data['deviceClass'] == 'high-end'
    assert data['deviceInfo'] == {'processor': 'Intel', 'gpu': 'No GPU', 'npu': None, 'ramGB': 8, 'cores': 4}
    assert BenchmarkResult.from_dict(data) == result
