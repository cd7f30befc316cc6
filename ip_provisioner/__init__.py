"""Idempotent Elastic IP provisioning for the local EC2 instance."""

NAME = "aws-ip-provisioner"
__version__ = "0.1.0"
