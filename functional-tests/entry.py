#!/usr/bin/env python3
"""
Functional test runner.

Usage:
    ./entry.py                          # Run all tests
    ./entry.py -t test_reorg_is_detected  # Run specific test
    ./entry.py -g electrs               # Run test group
    ./entry.py --config testenv.toml    # Override node/indexer options

Executables are taken from `BITCOIND_EXE` / `ELECTRS_EXE`, falling back to `PATH`.
"""

import argparse
import os
import sys

import flexitest

from common.runtime import TestRuntimeWithLogging
from common.test_logging import setup_logging
from envconfigs import RegtestEnvConfig
from testenv.config import (
    BITCOIND_EXE_ENV,
    ELECTRS_EXE_ENV,
    Config,
    ServiceType,
    resolve_exe,
)
from testenv.factories import BitcoinFactory, ElectrsFactory

TEST_DIR = "tests"


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="entry.py",
        description="Run functional tests",
    )
    parser.add_argument("-t", "--tests", nargs="*", help="Run specific test(s)")
    parser.add_argument("-g", "--groups", nargs="*", help="Run test group(s)")
    parser.add_argument("--config", help="TOML file with node and indexer options")
    return parser.parse_args(argv[1:])


def filter_tests(parsed_args: argparse.Namespace, modules: dict[str, str]) -> dict[str, str]:
    """
    Filters test modules against the `-t` / `-g` arguments.

    A test's groups are the directories between `tests/` and its file.
    """
    arg_groups = frozenset(parsed_args.groups or [])
    arg_tests = frozenset(os.path.split(t)[1].removesuffix(".py") for t in parsed_args.tests or [])

    filtered = {}
    for test, path in modules.items():
        parts = os.path.normpath(path).split(os.path.sep)
        idx = len(parts) - 1 - parts[::-1].index(TEST_DIR)
        test_groups = frozenset(parts[idx + 1 : -1])

        if arg_groups and not (arg_groups & test_groups):
            continue
        if arg_tests and test not in arg_tests:
            continue
        filtered[test] = path

    return filtered


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    setup_logging()

    config = Config.from_toml(args.config) if args.config else Config()

    factories: dict[ServiceType, flexitest.Factory] = {
        ServiceType.Bitcoin: BitcoinFactory(
            range(18443, 18643), exe=resolve_exe(BITCOIND_EXE_ENV, "bitcoind")
        ),
        ServiceType.Electrs: ElectrsFactory(
            range(60401, 60701), exe=resolve_exe(ELECTRS_EXE_ENV, "electrs")
        ),
    }

    global_envs: dict[str, flexitest.EnvConfig] = {
        "funded": RegtestEnvConfig(pre_generate_blocks=101, config=config),
    }

    root_dir = os.path.dirname(os.path.abspath(__file__))
    datadir = flexitest.create_datadir_in_workspace(os.path.join(root_dir, "_dd"))
    runtime = TestRuntimeWithLogging(global_envs, datadir, factories)

    test_dir = os.path.join(root_dir, TEST_DIR)
    modules = filter_tests(args, flexitest.runtime.scan_dir_for_modules(test_dir))
    tests = flexitest.runtime.load_candidate_modules(modules)

    runtime.prepare_registered_tests()
    results = runtime.run_tests(tests)

    runtime.save_json_file("results.json", results)
    flexitest.dump_results(results)

    flexitest.fail_on_error(results)

    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
