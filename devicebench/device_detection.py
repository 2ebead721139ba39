#!/usr/bin/env python3
"""
Device Detection - Classify a device and recommend a plan.

Turns PlatformSignals into a DeviceSpecs snapshot. Every signal has a
static fallback, so detection always produces a complete record.

Flagship criteria:
- CPU: 4+ cores
- RAM: 6+ GB
- Storage: 64+ GB available
- GPU: available (hardware renderer)

Plan recommendations:
- free:    flagship devices only (self-hosted)
- compute: 4+ cores and 4+ GB RAM
- premium: everything else (cloud-based)

Usage:
    specs = detect_device_capabilities()
    specs.print_summary()
    print(get_capability_message(specs))
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from devicebench import user_agent
from devicebench.platform_signals import (
    CapabilityProvider,
    HostCapabilityProvider,
    PlatformSignals,
)

logger = logging.getLogger('devicebench.device_detection')

DEFAULT_CPU_CORES = 2
DEFAULT_STORAGE_GB = 64.0

FLAGSHIP_MIN_CORES = 4
FLAGSHIP_MIN_RAM_GB = 6
FLAGSHIP_MIN_STORAGE_GB = 64
COMPUTE_MIN_CORES = 4
COMPUTE_MIN_RAM_GB = 4


@dataclass(frozen=True)
class DeviceSpecs:
    """Device capability snapshot"""
    type: str  # 'mobile', 'desktop', 'tablet'
    os: str
    cpu_cores: int
    ram_gb: float
    gpu_available: bool
    storage_gb: float
    is_flagship: bool
    recommended_plan: str  # 'free', 'compute', 'premium'

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation used by the onboarding client."""
        return {
            'type': self.type,
            'os': self.os,
            'cpuCores': self.cpu_cores,
            'ramGB': self.ram_gb,
            'gpuAvailable': self.gpu_available,
            'storageGB': self.storage_gb,
            'isFlagship': self.is_flagship,
            'recommendedPlan': self.recommended_plan,
        }

    def print_summary(self):
        """Print human-readable device report"""
        print("\n" + "="*80)
        print("DEVICE CAPABILITIES")
        print("="*80)
        print(f"\n💻 DEVICE")
        print(f"  Type: {self.type}")
        print(f"  OS: {self.os}")
        print(f"  Cores: {self.cpu_cores}")
        print(f"  Memory: {self.ram_gb:.1f} GB")
        print(f"  Storage available: {self.storage_gb:.1f} GB")
        print(f"  GPU: {'yes' if self.gpu_available else 'no'}")
        print(f"\n🎯 RECOMMENDATION")
        print(f"  Flagship: {'yes' if self.is_flagship else 'no'}")
        print(f"  Plan: {self.recommended_plan.upper()}")
        print(f"  {get_capability_message(self)}")
        print("\n" + "="*80)


@dataclass(frozen=True)
class PlanCompatibility:
    """Whether a plan suits a device, with an optional warning"""
    compatible: bool
    warning: Optional[str] = None


def estimate_ram(cpu_cores: int, platform_string: Optional[str]) -> float:
    """
    Guess RAM when the platform does not report it.

    Desktop-class platforms get 4/8/16 GB by core count, anything else
    gets the lower 2-8 GB tiers.
    """
    if user_agent.is_desktop_platform(platform_string):
        if cpu_cores >= 8:
            return 16
        return 8 if cpu_cores >= 4 else 4

    if cpu_cores >= 8:
        return 8
    if cpu_cores >= 6:
        return 6
    if cpu_cores >= 4:
        return 4
    return 2


def check_gpu_availability(signals: PlatformSignals) -> bool:
    """A GPU counts only if a renderer was found and it is not a software one."""
    if not signals.gpu_renderer:
        return False
    return not user_agent.is_software_renderer(signals.gpu_renderer)


def estimate_storage(signals: PlatformSignals) -> float:
    """Free storage in GB, DEFAULT_STORAGE_GB when no quota is known."""
    if signals.storage_quota_bytes is None:
        return DEFAULT_STORAGE_GB

    quota_gb = signals.storage_quota_bytes / (1024**3)
    usage_gb = (signals.storage_usage_bytes or 0) / (1024**3)
    return max(quota_gb - usage_gb, 0.0)


def is_flagship_device(cpu_cores: int, ram_gb: float, storage_gb: float, gpu_available: bool) -> bool:
    return (cpu_cores >= FLAGSHIP_MIN_CORES
            and ram_gb >= FLAGSHIP_MIN_RAM_GB
            and storage_gb >= FLAGSHIP_MIN_STORAGE_GB
            and gpu_available)


def recommend_plan(is_flagship: bool, cpu_cores: int, ram_gb: float) -> str:
    if is_flagship:
        return 'free'
    if cpu_cores >= COMPUTE_MIN_CORES and ram_gb >= COMPUTE_MIN_RAM_GB:
        return 'compute'
    return 'premium'


def collect_signals(provider: Optional[CapabilityProvider] = None) -> PlatformSignals:
    """Ask the provider for signals; an empty record if it fails."""
    provider = provider or HostCapabilityProvider()
    try:
        return provider.collect()
    except Exception as e:
        logger.warning(f"Capability provider {type(provider).__name__} failed, using fallbacks: {e}")
        return PlatformSignals()


def build_device_specs(signals: PlatformSignals) -> DeviceSpecs:
    """Apply fallbacks and plan rules to raw signals."""
    cpu_cores = signals.hardware_concurrency or DEFAULT_CPU_CORES
    ram_gb = signals.device_memory_gb or estimate_ram(cpu_cores, signals.platform)
    gpu_available = check_gpu_availability(signals)
    storage_gb = estimate_storage(signals)

    flagship = is_flagship_device(cpu_cores, ram_gb, storage_gb, gpu_available)

    return DeviceSpecs(
        type=user_agent.device_type(signals.user_agent),
        os=user_agent.operating_system(signals.user_agent),
        cpu_cores=cpu_cores,
        ram_gb=ram_gb,
        gpu_available=gpu_available,
        storage_gb=storage_gb,
        is_flagship=flagship,
        recommended_plan=recommend_plan(flagship, cpu_cores, ram_gb),
    )


def detect_device_capabilities(provider: Optional[CapabilityProvider] = None) -> DeviceSpecs:
    """
    Produce a DeviceSpecs snapshot for the device behind `provider`.

    Never raises: missing signals fall back to 2 cores, the RAM
    heuristic and 64 GB of storage.

    Args:
        provider: Signal source, defaults to the local host

    Returns:
        DeviceSpecs with flagship status and recommended plan
    """
    specs = build_device_specs(collect_signals(provider))
    logger.info(
        f"Detected {specs.type} ({specs.os}): {specs.cpu_cores} cores, "
        f"{specs.ram_gb:.1f}GB RAM, {specs.storage_gb:.1f}GB free, gpu={specs.gpu_available}, "
        f"plan={specs.recommended_plan}"
    )
    return specs


def get_capability_message(specs: DeviceSpecs) -> str:
    if specs.is_flagship:
        return (f"Flagship device detected! Your {specs.cpu_cores}-core CPU with {specs.ram_gb:g}GB RAM "
                f"can handle the full mesh network locally.")

    if specs.cpu_cores >= COMPUTE_MIN_CORES and specs.ram_gb >= COMPUTE_MIN_RAM_GB:
        return (f"Mid-range device detected. {specs.cpu_cores} cores and {specs.ram_gb:g}GB RAM. "
                f"We recommend cloud compute with local storage.")

    return (f"Your device has {specs.cpu_cores} cores and {specs.ram_gb:g}GB RAM. "
            f"We recommend cloud-based storage for optimal performance.")


def get_plan_compatibility(plan_name: str, specs: DeviceSpecs) -> PlanCompatibility:
    """
    Check whether `plan_name` suits the device.

    Self-hosted (free) plans need flagship specs. Compute plans always
    work but warn on under-powered devices.
    """
    plan = plan_name.lower()

    if 'free' in plan or 'self-hosted' in plan:
        if not specs.is_flagship:
            return PlanCompatibility(
                compatible=False,
                warning=(f"Self-hosted requires flagship specs: 4+ cores, 6+ GB RAM, GPU. "
                         f"Your device: {specs.cpu_cores} cores, {specs.ram_gb:g}GB RAM")
            )
        return PlanCompatibility(compatible=True)

    if 'compute' in plan:
        if specs.cpu_cores < COMPUTE_MIN_CORES or specs.ram_gb < COMPUTE_MIN_RAM_GB:
            return PlanCompatibility(
                compatible=True,
                warning="This plan works but may be slow on your device. Consider Premium for better performance."
            )
        return PlanCompatibility(compatible=True)

    return PlanCompatibility(compatible=True)
