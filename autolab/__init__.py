"""autolab - idempotent provisioning of a single-region AWS lab environment.

Creates a VPC, internet gateway, public and private subnets, a route
table, a security group, a key pair, one EC2 web server and one S3
bucket, tracking every identifier in a flat ``KEY=VALUE`` state file so
that re-runs reuse what already exists and cleanup knows what to delete.
"""

try:
    from importlib.metadata import version

    __version__ = version("autolab-provisioner")
except Exception:
    __version__ = "0.0.0.dev0"

__all__ = ["__version__"]
