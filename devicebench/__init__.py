"""Device capability detection, synthetic AI benchmarking and plan recommendation."""

# Signal providers and detection
from .platform_signals import (
    PlatformSignals,
    CapabilityProvider,
    HostCapabilityProvider,
    BrowserSignalsProvider,
    StaticCapabilityProvider
)
from .device_detection import (
    DeviceSpecs,
    PlanCompatibility,
    detect_device_capabilities,
    estimate_ram,
    get_capability_message,
    get_plan_compatibility
)

# Benchmark and recommendation
from .ai_benchmark import (
    BenchmarkResult,
    DeviceInfo,
    Recommendation,
    run_ai_benchmark,
    classify_ai_device,
    classify_device,
    get_recommendation,
    format_score
)

# Persistence
from .kv_store import (
    KeyValueStore,
    InMemoryStore,
    SQLiteKeyValueStore,
    RedisKeyValueStore,
    BENCHMARK_KEY,
    GEEKBENCH_PROFILE_KEY
)
from .benchmark_client import (
    BenchmarkClient,
    SaveOutcome,
    save_benchmark_result,
    load_benchmark_result
)

# Geekbench profiles
from .geekbench_profile import (
    GeekbenchProfile,
    GeekbenchDevice,
    GeekbenchProfileError,
    fetch_geekbench_profile,
    fetch_benchmark_by_id,
    validate_geekbench_url,
    extract_result_id
)

from .settings import BenchmarkSettings, ScoreConstants, WorkloadSizes, get_settings

__version__ = '0.1.0'

__all__ = [
    # Signal providers and detection
    'PlatformSignals',
    'CapabilityProvider',
    'HostCapabilityProvider',
    'BrowserSignalsProvider',
    'StaticCapabilityProvider',
    'DeviceSpecs',
    'PlanCompatibility',
    'detect_device_capabilities',
    'estimate_ram',
    'get_capability_message',
    'get_plan_compatibility',
    # Benchmark and recommendation
    'BenchmarkResult',
    'DeviceInfo',
    'Recommendation',
    'run_ai_benchmark',
    'classify_ai_device',
    'classify_device',
    'get_recommendation',
    'format_score',
    # Persistence
    'KeyValueStore',
    'InMemoryStore',
    'SQLiteKeyValueStore',
    'RedisKeyValueStore',
    'BENCHMARK_KEY',
    'GEEKBENCH_PROFILE_KEY',
    'BenchmarkClient',
    'SaveOutcome',
    'save_benchmark_result',
    'load_benchmark_result',
    # Geekbench profiles
    'GeekbenchProfile',
    'GeekbenchDevice',
    'GeekbenchProfileError',
    'fetch_geekbench_profile',
    'fetch_benchmark_by_id',
    'validate_geekbench_url',
    'extract_result_id',
    # Settings
    'BenchmarkSettings',
    'ScoreConstants',
    'WorkloadSizes',
    'get_settings',
]
