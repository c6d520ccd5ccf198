#!/usr/bin/env python3
# scripts/check_tenant.py
"""
Tenant diagnostic
- Resolves a tenant through the registry
- Lists its group peers
- Shows which Kaleyra settings are configured (never their values)
- Opens and closes a connection to the tenant database

Usage:
    python scripts/check_tenant.py spotty42
"""
import sys
from pathlib import Path

from sqlalchemy import text

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from wappy.core.config_loader import REQUIRED_KEYS, ProviderConfigLoader
from wappy.core.errors import WappyError
from wappy.db.registry import check_registry_connection
from wappy.db.tenant import TenantConnectionFactory
from wappy.services.tenant_resolver import TenantResolver


def check(tenant_code: str) -> int:
    print("=" * 70)
    print(f"🔎 TENANT CHECK: {tenant_code}")
    print("=" * 70)

    print("\n1️⃣  Registry connection...")
    if not check_registry_connection():
        print("   ❌ Registry not reachable, check REGISTRY_DB_* in .env")
        return 1
    print("   ✅ Registry reachable")

    print("\n2️⃣  Resolving tenant...")
    try:
        context = TenantResolver().resolve_with_peers(tenant_code)
    except WappyError as e:
        print(f"   ❌ {e.code}: {e.message}")
        return 1
    profile = context.profile
    print(f"   ✅ {profile.tenant_code} ({profile.display_name or 'no name'})")
    print(f"   Database: {profile.db_name}")
    print(f"   Group:    {profile.group_label or '-'}")
    if context.group_lookup_failed:
        print("   ⚠️  Group lookup failed")
    for peer in context.peers:
        print(f"   - peer {peer.tenant_code} ({peer.display_name or 'no name'})")

    print("\n3️⃣  Kaleyra settings...")
    try:
        keys = ProviderConfigLoader().configured_keys(tenant_code)
    except WappyError as e:
        print(f"   ❌ {e.code}: {e.message}")
        return 1
    for key, present in keys.items():
        marker = "✅" if present else ("❌" if key in REQUIRED_KEYS else "➖")
        print(f"   {marker} {key}")

    print("\n4️⃣  Tenant database...")
    try:
        with TenantConnectionFactory().connect(profile) as db:
            db.execute(text("SELECT 1"))
    except WappyError as e:
        print(f"   ❌ {e.code}: {e.message}")
        return 1
    print("   ✅ Connected and released")

    ready = all(keys[key] for key in REQUIRED_KEYS)
    print("\n" + "=" * 70)
    print("✅ Tenant ready to send" if ready else "⚠️  Tenant cannot send until the missing keys are set")
    print("=" * 70)
    return 0 if ready else 2


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    sys.exit(check(sys.argv[1]))
