#!/usr/bin/env python3
"""
Command-line entry point.

Examples:
  # Classify this machine and suggest a plan
  devicebench detect

  # Classify a device reported by a browser (navigator JSON)
  devicebench detect --signals navigator.json

  # Run the AI benchmark and save it (falls back to the local store)
  devicebench benchmark --save --api-key $TOKEN --store ./devicebench.db

  # Recommendation for the last locally stored result
  devicebench recommend --from-store ./devicebench.db
"""

import argparse
import dataclasses
import json
import logging
import os
import sys
from typing import Optional

from devicebench.ai_benchmark import get_recommendation, run_ai_benchmark
from devicebench.benchmark_client import BenchmarkClient, load_benchmark_result
from devicebench.device_detection import (
    detect_device_capabilities,
    get_plan_compatibility,
)
from devicebench.kv_store import open_store
from devicebench.platform_signals import (
    BrowserSignalsProvider,
    CapabilityProvider,
    HostCapabilityProvider,
    signals_to_dict,
)
from devicebench.settings import get_settings


def _provider_from_args(args) -> CapabilityProvider:
    if getattr(args, 'signals', None):
        with open(args.signals, 'r') as f:
            return BrowserSignalsProvider(json.load(f))
    return HostCapabilityProvider(storage_path=args.storage_path)


def cmd_detect(args) -> int:
    provider = _provider_from_args(args)
    if args.dump_signals:
        print(json.dumps(signals_to_dict(provider.collect()), indent=2))
        return 0

    specs = detect_device_capabilities(provider)

    if args.json:
        print(json.dumps(specs.to_dict(), indent=2))
    else:
        specs.print_summary()

    if args.plan:
        compatibility = get_plan_compatibility(args.plan, specs)
        status = 'compatible' if compatibility.compatible else 'not compatible'
        print(f"\nPlan '{args.plan}': {status}")
        if compatibility.warning:
            print(f"  ⚠️  {compatibility.warning}")
    return 0


def cmd_benchmark(args) -> int:
    settings = get_settings()
    if args.worker_mode:
        settings = dataclasses.replace(settings, worker_mode=args.worker_mode)

    result = run_ai_benchmark(_provider_from_args(args), settings=settings)
    result.print_summary()

    if args.export:
        result.export_json(args.export)
        print(f"✓ Benchmark result exported to {args.export}")

    if args.save:
        if not args.api_key:
            print("❌ --save needs --api-key (or DEVICEBENCH_API_KEY)")
            return 1
        store = open_store(args.store)
        with BenchmarkClient(api_key=args.api_key, base_url=args.api_url, store=store) as client:
            outcome = client.save_benchmark_result(result)
        if outcome.persisted:
            print(f"✓ Benchmark saved ({outcome.http_status})")
        else:
            print(f"⚠️  Benchmark service unavailable ({outcome.error}); "
                  f"stored locally under '{outcome.storage_key}'")
    return 0


def cmd_recommend(args) -> int:
    store = open_store(args.from_store)
    result = load_benchmark_result(store)
    if result is None:
        print(f"❌ No stored benchmark in {args.from_store}")
        return 1

    recommendation = get_recommendation(result)
    if args.json:
        print(json.dumps(recommendation.to_dict(), indent=2))
    else:
        print(f"Device class: {result.device_class}")
        print(f"Plan: {recommendation.plan}")
        print(recommendation.message)
    return 0


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog='devicebench',
        description='Detect device capabilities, run the AI benchmark and recommend a plan',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split('Examples:', 1)[1] if __doc__ else None
    )
    parser.add_argument('--log-level', default=settings.log_level, help='Logging level (default: %(default)s)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    def add_signal_args(sub):
        sub.add_argument('--signals', help='JSON file with navigator-style signals instead of probing this host')
        sub.add_argument('--storage-path', default='/', help='Filesystem path used for free-space detection')

    detect = subparsers.add_parser('detect', help='Classify the device and recommend a plan')
    add_signal_args(detect)
    detect.add_argument('--json', action='store_true', help='Print DeviceSpecs as JSON')
    detect.add_argument('--plan', help='Also check compatibility with this plan name')
    detect.add_argument('--dump-signals', action='store_true',
                        help='Print the raw signals as navigator-style JSON (reusable with --signals)')
    detect.set_defaults(func=cmd_detect)

    benchmark = subparsers.add_parser('benchmark', help='Run the AI benchmark')
    add_signal_args(benchmark)
    benchmark.add_argument('--save', action='store_true', help='Send the result to the benchmark service')
    benchmark.add_argument('--api-key', default=None, help='Bearer credential for the benchmark service')
    benchmark.add_argument('--api-url', default=settings.api_url, help='Benchmark service URL (default: %(default)s)')
    benchmark.add_argument('--store', default=settings.store_path,
                           help="Fallback store: SQLite path, redis:// URL or 'memory' (default: %(default)s)")
    benchmark.add_argument('--export', help='Write the result to this JSON file')
    benchmark.add_argument('--worker-mode', choices=['process', 'thread'], help='Multi-core worker type')
    benchmark.set_defaults(func=cmd_benchmark)

    recommend = subparsers.add_parser('recommend', help='Recommend a plan from a stored benchmark')
    recommend.add_argument('--from-store', default=settings.store_path,
                           help='Store holding the benchmark (default: %(default)s)')
    recommend.add_argument('--json', action='store_true', help='Print the recommendation as JSON')
    recommend.set_defaults(func=cmd_recommend)

    return parser


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, 'api_key', None) is None and args.command == 'benchmark':
        args.api_key = os.getenv('DEVICEBENCH_API_KEY')

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\n\n⚠️  Interrupted by user")
        return 1
    except Exception as e:
        print(f"\n\n❌ Error: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
