#!/usr/bin/env python3
"""Provision the Elastic IP to the local EC2 instance.

The EC2 instance id is fetched from instance metadata. Safe to run many times.

Requires an IAM instance role allowing ec2:AllocateAddress,
ec2:AssociateAddress and ec2:DescribeAddresses.

e.g.::

    aws-ip-provisioner \\
        --log-level=info \\
        --initial-wait-random-seconds=70 \\
        --id-tag-key=Id \\
        --id-tag-value=TEST-ID \\
        --kind-tag-key=Kind \\
        --kind-tag-value=aws-ip-provisioner \\
        --mounted-eip-file-path=/data/eip.yaml
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Callable, List, Optional

from ip_provisioner import NAME, __version__
from ip_provisioner import config
from ip_provisioner.config import ProvisionerConfig
from ip_provisioner.errors import ProvisionerError
from ip_provisioner.models import Tag
from ip_provisioner.orchestrator import Orchestrator

LOGGER = logging.getLogger(NAME)


def _parse_args(argv: List[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog=NAME,
        description="Provisions the Elastic IP to the local EC2 instance (idempotent).",
    )
    parser.add_argument("--version", action="version", version=f"{NAME} {__version__}")
    parser.add_argument(
        "-l", "--log-level",
        default=config.LOG_LEVEL,
        choices=list(config.LOG_LEVELS),
        help="Sets the log level (default %(default)s).",
    )
    parser.add_argument(
        "--initial-wait-random-seconds",
        type=int,
        default=config.INITIAL_WAIT_RANDOM_SECONDS,
        help="Maximum seconds to wait before calling EC2 (value chosen at random, 0 disables).",
    )
    parser.add_argument(
        "--id-tag-key",
        default=config.ID_TAG_KEY,
        help="Key of the 'Id' tag set on the created elastic IP (default %(default)s).",
    )
    parser.add_argument(
        "--id-tag-value",
        default=os.getenv("IP_PROVISIONER_ID_TAG_VALUE"),
        required=os.getenv("IP_PROVISIONER_ID_TAG_VALUE") is None,
        help="Value of the 'Id' tag.",
    )
    parser.add_argument(
        "--kind-tag-key",
        default=config.KIND_TAG_KEY,
        help="Key of the 'Kind' tag set on the created elastic IP (default %(default)s).",
    )
    parser.add_argument(
        "--kind-tag-value",
        default=os.getenv("IP_PROVISIONER_KIND_TAG_VALUE"),
        required=os.getenv("IP_PROVISIONER_KIND_TAG_VALUE") is None,
        help="Value of the 'Kind' tag.",
    )
    parser.add_argument(
        "--mounted-eip-file-path",
        default=config.MOUNTED_EIP_FILE_PATH,
        help="File storing the elastic IP record on the mounted volume (default %(default)s).",
    )
    parser.add_argument(
        "--region",
        default=config.default_region(),
        help="AWS region (default: AWS_REGION, then instance metadata).",
    )
    parser.add_argument(
        "--recover-from-tags",
        action="store_true",
        default=config.RECOVER_FROM_TAGS,
        help="When the record file is missing, reuse a single address already carrying both tags.",
    )
    return parser.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> ProvisionerConfig:
    return ProvisionerConfig(
        id_tag=Tag(args.id_tag_key, args.id_tag_value),
        kind_tag=Tag(args.kind_tag_key, args.kind_tag_value),
        log_level=args.log_level,
        max_jitter=args.initial_wait_random_seconds,
        record_path=args.mounted_eip_file_path,
        region=args.region,
        recover_from_tags=args.recover_from_tags,
    )


def execute(
    cfg: ProvisionerConfig,
    factory: Optional[Callable[[ProvisionerConfig], Orchestrator]] = None,
) -> int:
    """Run once and map the outcome to a process exit code."""
    factory = factory or Orchestrator.from_config
    try:
        report = factory(cfg.validate()).run()
    except ProvisionerError as exc:
        LOGGER.error("provisioning failed: %s (retryable %s)", exc, exc.retryable)
        return config.EXIT_RETRYABLE if exc.retryable else config.EXIT_FAILURE
    print(report.summary())
    return config.EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint. Returns process exit code."""
    args = _parse_args(list(sys.argv[1:] if argv is None else argv))
    print(f"{NAME} version: {__version__}")
    logging.basicConfig(
        # Unknown levels are rejected by ProvisionerConfig.validate() in execute().
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    LOGGER.info("starting '%s'", NAME)
    return execute(_config_from_args(args))


if __name__ == "__main__":
    sys.exit(main())
