#!/usr/bin/env python3
"""Example: Quickstart for crates-publisher

Minimal working example: validate a publish configuration and preview
the ``cargo publish`` command without running it.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install crates-publisher
"""
from __future__ import annotations

import crates_publisher as cp


def main() -> None:
    print(f"crates-publisher version: {cp.__version__}")

    plugin = cp.CratesPlugin()

    # Step 1: Validate a few configurations
    configs = [
        {"registry": "my-registry", "allow_dirty": True},
        {"manifest_path": "../outside/Cargo.toml"},
        {"registry": "http://internal.example.com/index"},
    ]

    print("\nValidation:")
    for config in configs:
        response = plugin.validate(config)
        status = "VALID" if response.valid else "INVALID"
        print(f"  [{status}] {config}")
        for error in response.errors:
            print(f"      {error}")

    # Step 2: Preview the publish step
    request = cp.ExecuteRequest(
        hook=cp.Hook.POST_PUBLISH,
        config={"token": "example-token", "features": ["serde"], "jobs": 4},
        context=cp.ReleaseContext(version="v1.2.3"),
        dry_run=True,
    )
    response = plugin.execute(request)
    print(f"\n{response.message}")
    print(f"  command: {response.outputs['command']}")


if __name__ == "__main__":
    main()
