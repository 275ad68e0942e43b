#!/usr/bin/env python3
"""
Seed script for the shipping keys in app-config-{env} DynamoDB tables.

- Seeds all 'global' keys
- Seeds only the current env's keys ('dev' -> app-config-dev, 'prod' -> app-config-prod)
- Post-deploy step stores the Shippo API key KMS-encrypted

Usage:
  python seed_app_config.py --region us-west-2 --environment dev

  # Post-deploy: store the provider key for the same env table
  python seed_app_config.py --region us-west-2 --environment prod \
      --update-post-deploy --shippo-api-key shippo_live_... --kms-key-arn arn:aws:kms:...
"""

import argparse
import sys
from datetime import datetime, timezone
from typing import List, Tuple

import boto3

from kms_utils import kms_encrypt, mask_secret

VALID_ENVS = {"dev", "prod"}

Item = Tuple[str, str, str, str]

GLOBAL_ITEMS: List[Item] = [
    ("shippo_api_base_url", "global", "https://api.goshippo.com", "Shippo REST API base URL"),
    ("shippo_api_timeout_seconds", "global", "30", "Timeout for calls to Shippo"),
]

ENV_ITEMS = {
    "dev": [
        ("shipping_provider", "dev", "mock", "Shipping provider: shippo|mock"),
    ],
    "prod": [
        ("shipping_provider", "prod", "shippo", "Shipping provider: shippo|mock"),
    ],
}


def table_name_for_app_config(env: str) -> str:
    if env not in VALID_ENVS:
        raise ValueError(f"Unsupported environment '{env}'. Choose from {sorted(VALID_ENVS)}.")
    return f"app-config-{env}"

def items_for(environment: str) -> List[Item]:
    table_name_for_app_config(environment)
    return GLOBAL_ITEMS + ENV_ITEMS[environment]

def _put(table, config_key: str, env: str, value: str, description: str, updated_by: str) -> None:
    table.put_item(Item={
        "config_key":  config_key,
        "environment": env,           # 'global' or the env being seeded
        "value":       value,
        "description": description,
        "updated_at":  datetime.now(timezone.utc).isoformat(),
        "updated_by":  updated_by,
    })

def seed_config(region: str, environment: str, table=None) -> Tuple[int, int]:
    table_name = table_name_for_app_config(environment)
    if table is None:
        table = boto3.resource("dynamodb", region_name=region).Table(table_name)

    items = items_for(environment)
    print(f"Seeding table '{table_name}' with {len(items)} items "
          f"(env={environment}) in region {region}...\n")

    ok = err = 0
    for config_key, env, value, description in items:
        try:
            _put(table, config_key, env, value, description, "seed_script")
            print(f"✓ {config_key} ({env})")
            ok += 1
        except Exception as e:
            print(f"✗ {config_key} ({env}) -> {e}")
            err += 1

    print(f"\nSeeding complete. Success={ok}, Errors={err}")
    return ok, err

def update_post_deployment(region: str, environment: str, shippo_api_key: str,
                           kms_key_arn: str, table=None) -> None:
    table_name = table_name_for_app_config(environment)
    if table is None:
        table = boto3.resource("dynamodb", region_name=region).Table(table_name)

    encrypted = kms_encrypt(shippo_api_key, kms_key_arn)
    _put(table, "shippo_api_key", environment, encrypted, "Shippo API key (KMS encrypted)", "post_deploy")
    print(f"✓ shippo_api_key = {mask_secret(shippo_api_key)} (encrypted) in '{table_name}'")

def main(argv=None):
    ap = argparse.ArgumentParser(description="Seed shipping keys into the app-config DynamoDB table")
    ap.add_argument("--region", default="us-west-2")
    ap.add_argument("--environment", default="dev", choices=sorted(VALID_ENVS))
    ap.add_argument("--update-post-deploy", action="store_true")
    ap.add_argument("--shippo-api-key")
    ap.add_argument("--kms-key-arn")
    args = ap.parse_args(argv)

    if args.update_post_deploy:
        missing = [n for n, v in {
            "--shippo-api-key": args.shippo_api_key,
            "--kms-key-arn":    args.kms_key_arn,
        }.items() if not v]
        if missing:
            print(f"Error: --update-post-deploy requires {', '.join(missing)}")
            sys.exit(1)
        update_post_deployment(args.region, args.environment, args.shippo_api_key, args.kms_key_arn)
    else:
        seed_config(args.region, args.environment)

if __name__ == "__main__":
    main()
