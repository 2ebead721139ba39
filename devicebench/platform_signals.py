"""
Platform signal providers.

A CapabilityProvider answers "what does this device report about itself?"
and returns a PlatformSignals record. Every field is optional: None means
the signal was unavailable and callers apply their own fallback.

Providers:
    HostCapabilityProvider    - the machine this process runs on
    BrowserSignalsProvider    - navigator-style signals reported by a client
    StaticCapabilityProvider  - fixed signals (tests, replays)

Usage:
    signals = HostCapabilityProvider().collect()
    print(signals.hardware_concurrency, signals.gpu_renderer)
"""

import logging
import os
import platform
import subprocess
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import psutil

logger = logging.getLogger('devicebench.platform_signals')

# PCI vendor ids seen under /sys/class/drm
DRM_VENDORS = {
    '0x10de': 'NVIDIA',
    '0x1002': 'AMD',
    '0x8086': 'Intel',
}

# Paravirtual and emulated display adapters; these render in software
VIRTUAL_DRM_VENDORS = {
    '0x1af4': 'virtio-gpu',
    '0x1b36': 'QXL',
    '0x15ad': 'VMware SVGA',
    '0x1234': 'bochs',
}


@dataclass(frozen=True)
class PlatformSignals:
    """Raw device signals, None where the platform did not answer."""
    user_agent: Optional[str] = None
    platform: Optional[str] = None
    hardware_concurrency: Optional[int] = None
    device_memory_gb: Optional[float] = None
    gpu_renderer: Optional[str] = None
    gpu_half_float: Optional[bool] = None
    storage_quota_bytes: Optional[int] = None
    storage_usage_bytes: Optional[int] = None
    ml_api_available: bool = False
    processor: Optional[str] = None


class CapabilityProvider:
    """Interface for anything that can report PlatformSignals."""

    def collect(self) -> PlatformSignals:
        raise NotImplementedError


class StaticCapabilityProvider(CapabilityProvider):
    """Returns the same signals on every call."""

    def __init__(self, signals: Optional[PlatformSignals] = None, **overrides):
        self.signals = replace(signals or PlatformSignals(), **overrides)

    def collect(self) -> PlatformSignals:
        return self.signals


class BrowserSignalsProvider(CapabilityProvider):
    """
    Signals reported by a browser client.

    Accepts the keys a navigator probe sends back: userAgent, platform,
    hardwareConcurrency, deviceMemory, gpuRenderer, halfFloat,
    storageQuota, storageUsage, ml. Missing or malformed values become None.
    """

    def __init__(self, navigator: Mapping[str, Any]):
        self.navigator = dict(navigator or {})

    def collect(self) -> PlatformSignals:
        nav = self.navigator
        return PlatformSignals(
            user_agent=_as_str(nav.get('userAgent')),
            platform=_as_str(nav.get('platform')),
            hardware_concurrency=_as_positive_int(nav.get('hardwareConcurrency')),
            device_memory_gb=_as_positive_float(nav.get('deviceMemory')),
            gpu_renderer=_as_str(nav.get('gpuRenderer')),
            gpu_half_float=nav.get('halfFloat') if isinstance(nav.get('halfFloat'), bool) else None,
            storage_quota_bytes=_as_non_negative_int(nav.get('storageQuota')),
            storage_usage_bytes=_as_non_negative_int(nav.get('storageUsage')),
            ml_api_available=bool(nav.get('ml', False)),
        )


class HostCapabilityProvider(CapabilityProvider):
    """
    Signals for the local machine.

    Each query is guarded on its own; a failing query leaves its field as
    None and never aborts the collection.
    """

    def __init__(self, storage_path: str = '/', timeout: float = 2.0, drm_root: str = '/sys/class/drm'):
        """
        Args:
            storage_path: Filesystem path whose free space counts as storage
            timeout: Seconds allowed for each external tool (nvidia-smi, sysctl)
            drm_root: sysfs directory listing DRM devices on Linux
        """
        self.storage_path = storage_path
        self.timeout = timeout
        self.drm_root = Path(drm_root)
        self.system = platform.system()

    def collect(self) -> PlatformSignals:
        quota, usage = self.get_storage()
        renderer, half_float = self.get_gpu()

        signals = PlatformSignals(
            user_agent=self.build_user_agent(),
            platform=self.get_platform_string(),
            hardware_concurrency=self.get_cpu_count(),
            device_memory_gb=self.get_memory_gb(),
            gpu_renderer=renderer,
            gpu_half_float=half_float,
            storage_quota_bytes=quota,
            storage_usage_bytes=usage,
            ml_api_available=False,
            processor=self.get_cpu_model(),
        )
        logger.debug(f"Collected host signals: {signals}")
        return signals

    def get_cpu_count(self) -> Optional[int]:
        """Logical core count."""
        try:
            count = psutil.cpu_count(logical=True)
            if count:
                return int(count)
        except Exception as e:
            logger.debug(f"psutil.cpu_count failed: {e}")
        return os.cpu_count()

    def get_memory_gb(self) -> Optional[float]:
        """
        Installed memory in whole GB.

        The kernel reports usable memory (a "4 GB" host shows about 3.8 GB),
        so the figure is rounded like navigator.deviceMemory before the
        RAM thresholds see it.
        """
        try:
            return _round_memory_gb(psutil.virtual_memory().total / (1024**3))
        except Exception as e:
            logger.debug(f"psutil.virtual_memory failed: {e}")

        if self.system == 'Linux':
            try:
                with open('/proc/meminfo', 'r') as f:
                    for line in f:
                        if 'MemTotal' in line:
                            kb = int(line.split()[1])
                            return _round_memory_gb(kb / (1024**2))
            except (OSError, ValueError, IndexError) as e:
                logger.debug(f"/proc/meminfo unreadable: {e}")
        return None

    def get_cpu_model(self) -> Optional[str]:
        """CPU model name."""
        try:
            if self.system == 'Darwin':
                result = subprocess.run(['sysctl', '-n', 'machdep.cpu.brand_string'],
                                        capture_output=True, text=True, timeout=self.timeout)
                model = result.stdout.strip()
                return model or None
            elif self.system == 'Linux':
                with open('/proc/cpuinfo', 'r') as f:
                    for line in f:
                        if 'model name' in line:
                            return line.split(':')[1].strip()
            return platform.processor() or None
        except Exception as e:
            logger.debug(f"CPU model lookup failed: {e}")
            return None

    def get_storage(self):
        """(quota_bytes, usage_bytes) for the storage path, (None, None) if unknown."""
        try:
            usage = psutil.disk_usage(self.storage_path)
            return int(usage.total), int(usage.used)
        except Exception as e:
            logger.debug(f"disk_usage({self.storage_path}) failed: {e}")
            return None, None

    def get_gpu(self):
        """
        (renderer, half_float_supported) for the first GPU found.

        Checks, in order:
        - NVIDIA GPUs (via nvidia-smi)
        - Apple Silicon GPU (via system_profiler)
        - Linux DRM devices (via /sys/class/drm)
        """
        try:
            result = subprocess.run(
                ['nvidia-smi', '--query-gpu=name', '--format=csv,noheader'],
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
            if result.returncode == 0:
                names = [line.strip() for line in result.stdout.splitlines() if line.strip()]
                if names:
                    return names[0], True
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"nvidia-smi unavailable: {e}")

        if self.system == 'Darwin':
            try:
                result = subprocess.run(
                    ['system_profiler', 'SPDisplaysDataType'],
                    capture_output=True,
                    text=True,
                    timeout=self.timeout * 2
                )
                for line in result.stdout.splitlines():
                    if 'Chipset Model' in line:
                        return line.split(':', 1)[1].strip(), True
                if 'Apple' in result.stdout:
                    return 'Apple Silicon GPU', True
            except (OSError, subprocess.SubprocessError) as e:
                logger.debug(f"system_profiler unavailable: {e}")

        if self.system == 'Linux':
            try:
                for card in sorted(self.drm_root.glob('card[0-9]*')):
                    vendor_file = card / 'device' / 'vendor'
                    if vendor_file.exists():
                        vendor_id = vendor_file.read_text().strip().lower()
                        if vendor_id in VIRTUAL_DRM_VENDORS:
                            name = VIRTUAL_DRM_VENDORS[vendor_id]
                            logger.debug(f"Skipping virtual display adapter {name} ({card.name})")
                            continue
                        vendor = DRM_VENDORS.get(vendor_id, f'GPU {vendor_id}')
                        return f'{vendor} ({card.name})', None
            except OSError as e:
                logger.debug(f"{self.drm_root} unreadable: {e}")

        return None, None

    def get_platform_string(self) -> str:
        """navigator.platform-style string."""
        if self.system == 'Windows':
            return 'Win32'
        if self.system == 'Darwin':
            return 'MacIntel'
        return f"{self.system} {platform.machine()}".strip()

    def build_user_agent(self) -> str:
        """UA-like string so the host goes through the same heuristics as a browser."""
        machine = platform.machine() or 'unknown'
        if self.system == 'Windows':
            return f"Mozilla/5.0 (Windows NT {platform.release()}; {machine})"
        if self.system == 'Darwin':
            return f"Mozilla/5.0 (Macintosh; Mac OS X {platform.mac_ver()[0]}; {machine})"
        return f"Mozilla/5.0 (X11; {self.system} {machine})"


def _round_memory_gb(total_gb: float) -> float:
    return float(max(round(total_gb), 1))


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _as_positive_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _as_non_negative_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None


def _as_positive_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def signals_to_dict(signals: PlatformSignals) -> Dict[str, Any]:
    """navigator-style mapping, the inverse of BrowserSignalsProvider."""
    return {
        'userAgent': signals.user_agent,
        'platform': signals.platform,
        'hardwareConcurrency': signals.hardware_concurrency,
        'deviceMemory': signals.device_memory_gb,
        'gpuRenderer': signals.gpu_renderer,
        'halfFloat': signals.gpu_half_float,
        'storageQuota': signals.storage_quota_bytes,
        'storageUsage': signals.storage_usage_bytes,
        'ml': signals.ml_api_available,
    }
