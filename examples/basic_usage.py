#!/usr/bin/env python3
"""
Basic usage example for etcd-config-bridge.

This example demonstrates:
1. Reading and writing single keys as flat property maps
2. Failing fast with the typed result API
3. Loading a directory through the configuration provider

Requires a running etcd with the v2 API enabled, e.g.
``EtcdSettings__Url=http://127.0.0.1:2379 python examples/basic_usage.py``
"""

import asyncio

from etcd_config_bridge import (
    VERSION_ERROR,
    ConfigurationProvider,
    EtcdAccessError,
    EtcdAccessor,
    EtcdPropertySource,
    setup_logging,
)

setup_logging(level="INFO")


async def main():
    """Main application function."""
    print("🚀 Starting etcd-config-bridge example...")

    with EtcdAccessor.from_env() as accessor:
        version = accessor.get_version()
        if version == VERSION_ERROR:
            print(f"❌ etcd at {accessor.server_url} is not reachable")
            return
        print(f"🔗 Connected to {accessor.server_url}: {version}")

        # Flat map API: errors come back as _key.error entries
        print("\n📝 Writing /demo/app/ApiUrl and /demo/app/Debug...")
        written = accessor.set("demo/app/ApiUrl", "https://api.demo.com")
        for key, value in written.items():
            print(f"  {key} = {value}")
        accessor.set("demo/app/Debug", "false", ttl_seconds=300)

        # Typed API: raise instead of scanning for _key.error
        try:
            result = accessor.read("demo/app/Debug").raise_for_error()
            ttl = result.entries.get("_demo/app/Debug.ttl")
            print(f"\n🔍 Debug = {result.value} (ttl {ttl})")
        except EtcdAccessError as e:
            print(f"❌ Read failed: {e.describe()}")

        provider = ConfigurationProvider(
            [EtcdPropertySource(accessor, directory="/demo", name="demo")]
        )
        if not await provider.start():
            print("❌ Failed to load configuration")
            return

        configs = await provider.get_all_configs()
        print(f"\n📊 Loaded {len(configs)} configuration keys")
        config = provider.get_configuration()
        for key, value in configs.items():
            print(f"  {key}: {value} {config.meta(key)}")

        print("\n🧹 Cleaning up...")
        accessor.delete("demo/app/ApiUrl")
        accessor.delete("demo/app/Debug")

    print("👋 Goodbye!")


if __name__ == "__main__":
    asyncio.run(main())
