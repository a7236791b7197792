"""Creation and deletion steps, one pair per :class:`ResourceKind`.

Every creation step follows the same contract:

1. **Guard**: if the primary key is recorded and the resource is usable in
   AWS, reuse it.  A recorded-but-missing resource is recreated and its
   key overwritten.
2. **Dependencies**: upstream keys are read from the state file (or the
   dry-run overlay); a missing one raises :class:`DependencyMissing`.
3. **Action**: one logical creation request, no retries.  The primary
   identifier is recorded as soon as AWS returns it; a later failing
   sub-call raises :class:`PartialSuccess` and nothing is rolled back.

In dry-run mode no mutating call is issued.  Placeholder identifiers
(``dryrun-<key>``) are kept in memory so dependent steps can resolve.

Deletion steps treat "not recorded" and "already gone" as success and drop
the kind's keys once the resource is deleted.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, Optional

from botocore.exceptions import BotoCoreError, ClientError

from autolab.aws import ec2 as ec2_api
from autolab.aws import network
from autolab.aws import s3 as s3_api
from autolab.aws.calls import error_code, error_message
from autolab.aws.oracle import ExistenceOracle, Presence
from autolab.config.models import LabConfig
from autolab.errors import (
    DependencyMissing,
    LabError,
    PartialSuccess,
    PreflightFailure,
    ProviderCallFailure,
)
from autolab.render.userdata import render_user_data
from autolab.resources.graph import RESOURCE_SPECS, ResourceKind, dependency_keys
from autolab.state.models import ResourceState, StateKey
from autolab.state.store import StateStore

logger = logging.getLogger(__name__)

DRY_RUN_PREFIX = "dryrun-"

K = ResourceKind


# ---------------------------------------------------------------------------
# Context and outcome
# ---------------------------------------------------------------------------


@dataclass
class StepOutcome:
    """Result of one creation or deletion step."""

    kind: ResourceKind
    state: ResourceState
    resource_id: str = ""
    message: str = ""
    error: Optional[LabError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class StepContext:
    """Everything a step needs; built once per run."""

    cfg: LabConfig
    store: StateStore
    ec2: Any
    s3: Any
    oracle: ExistenceOracle
    region: str
    dry_run: bool = False
    placeholders: Dict[StateKey, str] = field(default_factory=dict)

    def lookup(self, key: StateKey) -> Optional[str]:
        if key in self.placeholders:
            return self.placeholders[key]
        return self.store.lookup(key)

    def require(self, key: StateKey, *, needed_by: ResourceKind) -> str:
        value = self.lookup(key)
        if not value:
            raise DependencyMissing(key.value, needed_by=needed_by.value)
        return value

    def record(self, key: StateKey, value: str) -> None:
        if self.dry_run:
            self.placeholders[key] = value
        self.store.put(key, value)

    def forget(self, keys: Iterable[StateKey]) -> None:
        for key in keys:
            self.placeholders.pop(key, None)
            self.store.delete(key)


def placeholder_for(key: StateKey) -> str:
    return f"{DRY_RUN_PREFIX}{key.value.lower()}"


def run_step(
    step: Callable[[StepContext], StepOutcome],
    ctx: StepContext,
    kind: ResourceKind,
) -> StepOutcome:
    """Run *step*, turning a :class:`LabError` into a failed outcome.

    Botocore and filesystem errors that escaped :func:`provider_call` are
    wrapped the same way.
    """
    try:
        return step(ctx)
    except LabError as exc:
        return _failed(kind, exc)
    except (BotoCoreError, ClientError) as exc:
        return _failed(
            kind,
            ProviderCallFailure(kind.value, error_message(exc), code=error_code(exc)),
        )
    except OSError as exc:
        return _failed(kind, LabError(f"{kind.value}: {exc}"))


def _failed(kind: ResourceKind, exc: LabError) -> StepOutcome:
    logger.error("%s failed: %s", RESOURCE_SPECS[kind].title, exc)
    state = ResourceState.CREATED if isinstance(exc, PartialSuccess) else ResourceState.UNKNOWN
    resource_id = exc.resource_id if isinstance(exc, PartialSuccess) else ""
    return StepOutcome(kind, state, resource_id, str(exc), error=exc)


@contextmanager
def _follow_up(resource_id: str) -> Iterator[None]:
    """Wrap sub-calls made after *resource_id* was created and recorded."""
    try:
        yield
    except (ProviderCallFailure, OSError) as exc:
        raise PartialSuccess(resource_id, exc) from exc


# ---------------------------------------------------------------------------
# Creation scaffolding
# ---------------------------------------------------------------------------

Creator = Callable[[StepContext, Dict[StateKey, str]], str]


def _ensure(
    ctx: StepContext,
    kind: ResourceKind,
    create: Creator,
    *,
    on_reuse: Optional[Callable[[StepContext, str], None]] = None,
) -> StepOutcome:
    spec = RESOURCE_SPECS[kind]

    recorded = ctx.store.lookup(spec.primary_key)
    if recorded:
        logger.info("Found existing %s in state file: %s", spec.title, recorded)
        if ctx.oracle.is_usable(kind, recorded):
            logger.info("%s exists in AWS. Skipping creation.", spec.title)
            if on_reuse is not None and not ctx.dry_run:
                on_reuse(ctx, recorded)
            return StepOutcome(kind, ResourceState.VERIFIED_PRESENT, recorded, "reused")
        logger.warning(
            "%s %s recorded in state file but not found in AWS. Will create a new one.",
            spec.title, recorded,
        )

    deps = {key: ctx.require(key, needed_by=kind) for key in dependency_keys(kind)}

    if ctx.dry_run:
        logger.info("[DRY RUN] Would create %s", kind.value)
        for key in spec.keys:
            ctx.placeholders[key] = placeholder_for(key)
        return StepOutcome(
            kind, ResourceState.UNKNOWN,
            ctx.placeholders[spec.primary_key], f"Would create {kind.value}",
        )

    resource_id = create(ctx, deps)
    logger.info("%s created successfully: %s", spec.title, resource_id)
    return StepOutcome(kind, ResourceState.CREATED, resource_id, "created")


# ---------------------------------------------------------------------------
# Creators
# ---------------------------------------------------------------------------


def _create_key_pair(ctx: StepContext, deps: Dict[StateKey, str]) -> str:
    cfg = ctx.cfg
    key_file = cfg.key_file
    if key_file.is_file():
        logger.warning("Key file already exists locally: %s", key_file)
        if ctx.oracle.exists(K.KEY_PAIR, cfg.key_name) == Presence.PRESENT:
            logger.info("Key Pair already exists in AWS. Using existing key pair.")
            ctx.record(StateKey.KEY_NAME, cfg.key_name)
            return cfg.key_name
        logger.warning("Local key file exists but key pair not found in AWS.")
        ec2_api.backup_key_file(key_file)

    material = ec2_api.create_key_pair(ctx.ec2, cfg)
    ctx.record(StateKey.KEY_NAME, cfg.key_name)
    with _follow_up(cfg.key_name):
        ec2_api.write_key_file(key_file, material)
    return cfg.key_name


def _create_network(ctx: StepContext, deps: Dict[StateKey, str]) -> str:
    vpc_id = network.create_vpc(ctx.ec2, ctx.cfg)
    ctx.record(StateKey.VPC_ID, vpc_id)
    with _follow_up(vpc_id):
        network.enable_vpc_dns(ctx.ec2, vpc_id)
    return vpc_id


def _create_gateway(ctx: StepContext, deps: Dict[StateKey, str]) -> str:
    vpc_id = deps[StateKey.VPC_ID]
    igw_id = network.create_internet_gateway(ctx.ec2, ctx.cfg)
    ctx.record(StateKey.IGW_ID, igw_id)
    with _follow_up(igw_id):
        network.attach_internet_gateway(ctx.ec2, igw_id, vpc_id)
    return igw_id


def _create_subnet(
    ctx: StepContext,
    deps: Dict[StateKey, str],
    *,
    public: bool,
) -> str:
    cfg = ctx.cfg
    zones = network.list_availability_zones(ctx.ec2)
    az = network.pick_availability_zone(zones, 0 if public else 1)
    subnet_id = network.create_subnet(
        ctx.ec2, cfg,
        vpc_id=deps[StateKey.VPC_ID],
        cidr=cfg.public_subnet_cidr if public else cfg.private_subnet_cidr,
        availability_zone=az,
        name=cfg.public_subnet_name if public else cfg.private_subnet_name,
    )
    if public:
        ctx.record(StateKey.PUBLIC_SUBNET_ID, subnet_id)
        ctx.record(StateKey.PUBLIC_SUBNET_AZ, az)
        with _follow_up(subnet_id):
            network.enable_public_ip_on_launch(ctx.ec2, subnet_id)
    else:
        ctx.record(StateKey.PRIVATE_SUBNET_ID, subnet_id)
        ctx.record(StateKey.PRIVATE_SUBNET_AZ, az)
    return subnet_id


def _create_route_table(ctx: StepContext, deps: Dict[StateKey, str]) -> str:
    rt_id = network.create_route_table(ctx.ec2, ctx.cfg, deps[StateKey.VPC_ID])
    ctx.record(StateKey.PUBLIC_RT_ID, rt_id)
    with _follow_up(rt_id):
        network.add_default_route(ctx.ec2, rt_id, deps[StateKey.IGW_ID])
        assoc_id = network.associate_route_table(
            ctx.ec2, rt_id, deps[StateKey.PUBLIC_SUBNET_ID]
        )
        ctx.record(StateKey.PUBLIC_RT_ASSOC_ID, assoc_id)
    return rt_id


def _create_security_group(ctx: StepContext, deps: Dict[StateKey, str]) -> str:
    sg_id = ec2_api.create_security_group(ctx.ec2, ctx.cfg, deps[StateKey.VPC_ID])
    ctx.record(StateKey.SECURITY_GROUP_ID, sg_id)
    with _follow_up(sg_id):
        for rule in ctx.cfg.ingress_rules:
            ec2_api.authorize_ingress(ctx.ec2, sg_id, rule)
    return sg_id


def _record_instance_details(ctx: StepContext, instance_id: str) -> None:
    details = ec2_api.describe_instance(ctx.ec2, instance_id)
    if details is None:
        return
    for key, value in (
        (StateKey.PUBLIC_IP, details.public_ip),
        (StateKey.PRIVATE_IP, details.private_ip),
        (StateKey.INSTANCE_AZ, details.availability_zone),
    ):
        if value:
            ctx.record(key, value)


def _create_instance(ctx: StepContext, deps: Dict[StateKey, str]) -> str:
    cfg = ctx.cfg
    try:
        user_data = render_user_data(cfg.user_data_template, cfg.index_page)
    except (FileNotFoundError, ValueError) as exc:
        raise PreflightFailure(str(exc)) from exc

    ami_id = ec2_api.latest_ami(ctx.ec2, cfg.ami_name_filter)
    logger.info("Using AMI: %s", ami_id)
    ctx.record(StateKey.AMI_ID, ami_id)

    instance_id = ec2_api.run_instance(
        ctx.ec2, cfg,
        ami_id=ami_id,
        subnet_id=deps[StateKey.PUBLIC_SUBNET_ID],
        security_group_id=deps[StateKey.SECURITY_GROUP_ID],
        key_name=deps[StateKey.KEY_NAME],
        user_data=user_data,
    )
    ctx.record(StateKey.INSTANCE_ID, instance_id)

    logger.info("Waiting for instance to be running...")
    if not ec2_api.wait_for_instance(
        ctx.ec2, instance_id, "instance_running",
        delay=cfg.instance_wait_delay,
        max_attempts=cfg.instance_wait_max_attempts,
    ):
        logger.warning("Instance %s is not running yet; addresses may be incomplete", instance_id)

    with _follow_up(instance_id):
        _record_instance_details(ctx, instance_id)
    return instance_id


def _create_bucket(ctx: StepContext, deps: Dict[StateKey, str]) -> str:
    cfg = ctx.cfg
    name = s3_api.generate_bucket_name(cfg.bucket_prefix)
    s3_api.create_bucket(ctx.s3, name, ctx.region)
    ctx.record(StateKey.S3_BUCKET_NAME, name)
    with _follow_up(name):
        s3_api.tag_bucket(ctx.s3, cfg, name)
        s3_api.enable_versioning(ctx.s3, name)
        if cfg.welcome_file is not None:
            if cfg.welcome_public_read:
                s3_api.allow_public_acls(ctx.s3, name)
            url = s3_api.upload_welcome_file(
                ctx.s3, name, cfg.welcome_file,
                region=ctx.region, public_read=cfg.welcome_public_read,
            )
            ctx.record(StateKey.WELCOME_FILE_URL, url)
    return name


# ---------------------------------------------------------------------------
# Public creation steps
# ---------------------------------------------------------------------------


def ensure_key_pair(ctx: StepContext) -> StepOutcome:
    return _ensure(ctx, K.KEY_PAIR, _create_key_pair)


def ensure_network(ctx: StepContext) -> StepOutcome:
    return _ensure(ctx, K.NETWORK, _create_network)


def ensure_gateway(ctx: StepContext) -> StepOutcome:
    return _ensure(ctx, K.GATEWAY, _create_gateway)


def ensure_public_subnet(ctx: StepContext) -> StepOutcome:
    return _ensure(ctx, K.PUBLIC_SUBNET, lambda c, d: _create_subnet(c, d, public=True))


def ensure_private_subnet(ctx: StepContext) -> StepOutcome:
    return _ensure(ctx, K.PRIVATE_SUBNET, lambda c, d: _create_subnet(c, d, public=False))


def ensure_route_table(ctx: StepContext) -> StepOutcome:
    return _ensure(ctx, K.ROUTE_TABLE, _create_route_table)


def ensure_security_group(ctx: StepContext) -> StepOutcome:
    return _ensure(ctx, K.SECURITY_GROUP, _create_security_group)


def ensure_instance(ctx: StepContext) -> StepOutcome:
    return _ensure(ctx, K.INSTANCE, _create_instance, on_reuse=_record_instance_details)


def ensure_bucket(ctx: StepContext) -> StepOutcome:
    return _ensure(ctx, K.BUCKET, _create_bucket)


CREATE_STEPS: Dict[ResourceKind, Callable[[StepContext], StepOutcome]] = {
    K.KEY_PAIR: ensure_key_pair,
    K.NETWORK: ensure_network,
    K.GATEWAY: ensure_gateway,
    K.PUBLIC_SUBNET: ensure_public_subnet,
    K.PRIVATE_SUBNET: ensure_private_subnet,
    K.ROUTE_TABLE: ensure_route_table,
    K.SECURITY_GROUP: ensure_security_group,
    K.INSTANCE: ensure_instance,
    K.BUCKET: ensure_bucket,
}


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------

Deleter = Callable[[StepContext, str], None]


def _still_present(ctx: StepContext, kind: ResourceKind, resource_id: str) -> bool:
    if kind == K.INSTANCE:
        return ctx.oracle.instance_state(resource_id) not in (None, "terminated")
    return ctx.oracle.exists(kind, resource_id) == Presence.PRESENT


def _teardown(ctx: StepContext, kind: ResourceKind, delete: Deleter) -> StepOutcome:
    spec = RESOURCE_SPECS[kind]
    resource_id = ctx.store.lookup(spec.primary_key)
    if not resource_id:
        logger.warning("No %s found in state file", spec.title)
        ctx.forget(spec.keys)
        return StepOutcome(kind, ResourceState.UNKNOWN, "", "not recorded")

    if not _still_present(ctx, kind, resource_id):
        logger.warning("%s does not exist: %s", spec.title, resource_id)
        ctx.forget(spec.keys)
        return StepOutcome(kind, ResourceState.VERIFIED_ABSENT, resource_id, "already gone")

    if ctx.dry_run:
        logger.info("[DRY RUN] Would delete %s: %s", spec.title, resource_id)
        return StepOutcome(
            kind, ResourceState.VERIFIED_PRESENT, resource_id, f"Would delete {kind.value}"
        )

    logger.info("Deleting %s: %s", spec.title, resource_id)
    delete(ctx, resource_id)
    ctx.forget(spec.keys)
    logger.info("%s deleted successfully", spec.title)
    return StepOutcome(kind, ResourceState.DELETED, resource_id, "deleted")


def _delete_bucket(ctx: StepContext, name: str) -> None:
    logger.info("Emptying S3 bucket contents...")
    s3_api.empty_bucket(ctx.s3, name)
    s3_api.delete_bucket(ctx.s3, name)


def _delete_instance(ctx: StepContext, instance_id: str) -> None:
    ec2_api.terminate_instance(ctx.ec2, instance_id)
    logger.info("Waiting for instance to terminate...")
    if not ec2_api.wait_for_instance(
        ctx.ec2, instance_id, "instance_terminated",
        delay=ctx.cfg.instance_wait_delay,
        max_attempts=ctx.cfg.instance_wait_max_attempts,
    ):
        logger.warning("Timeout waiting for instance termination, but continuing...")


def _delete_route_table(ctx: StepContext, rt_id: str) -> None:
    assoc_id = ctx.store.lookup(StateKey.PUBLIC_RT_ASSOC_ID)
    if assoc_id:
        logger.info("Disassociating Route Table...")
        try:
            network.disassociate_route_table(ctx.ec2, assoc_id)
        except ProviderCallFailure as exc:
            if not network.is_not_found(exc):
                logger.warning("Failed to disassociate Route Table, but continuing: %s", exc)
    network.delete_route_table(ctx.ec2, rt_id)


def _delete_gateway(ctx: StepContext, igw_id: str) -> None:
    vpc_id = ctx.store.lookup(StateKey.VPC_ID)
    if vpc_id:
        logger.info("Detaching Internet Gateway from VPC...")
        try:
            network.detach_internet_gateway(ctx.ec2, igw_id, vpc_id)
        except ProviderCallFailure as exc:
            if not network.is_not_found(exc):
                logger.warning("Failed to detach Internet Gateway, but continuing: %s", exc)
    network.delete_internet_gateway(ctx.ec2, igw_id)


def _delete_key_pair(ctx: StepContext, key_name: str) -> None:
    ec2_api.delete_key_pair(ctx.ec2, key_name)
    if ctx.cfg.key_file.is_file():
        logger.info("Local key file left in place: %s", ctx.cfg.key_file)


def delete_bucket(ctx: StepContext) -> StepOutcome:
    return _teardown(ctx, K.BUCKET, _delete_bucket)


def delete_instance(ctx: StepContext) -> StepOutcome:
    return _teardown(ctx, K.INSTANCE, _delete_instance)


def delete_security_group(ctx: StepContext) -> StepOutcome:
    return _teardown(ctx, K.SECURITY_GROUP, lambda c, i: ec2_api.delete_security_group(c.ec2, i))


def delete_route_table(ctx: StepContext) -> StepOutcome:
    return _teardown(ctx, K.ROUTE_TABLE, _delete_route_table)


def delete_private_subnet(ctx: StepContext) -> StepOutcome:
    return _teardown(ctx, K.PRIVATE_SUBNET, lambda c, i: network.delete_subnet(c.ec2, i))


def delete_public_subnet(ctx: StepContext) -> StepOutcome:
    return _teardown(ctx, K.PUBLIC_SUBNET, lambda c, i: network.delete_subnet(c.ec2, i))


def delete_gateway(ctx: StepContext) -> StepOutcome:
    return _teardown(ctx, K.GATEWAY, _delete_gateway)


def delete_network(ctx: StepContext) -> StepOutcome:
    return _teardown(ctx, K.NETWORK, lambda c, i: network.delete_vpc(c.ec2, i))


def delete_key_pair(ctx: StepContext) -> StepOutcome:
    return _teardown(ctx, K.KEY_PAIR, _delete_key_pair)


TEARDOWN_STEPS: Dict[ResourceKind, Callable[[StepContext], StepOutcome]] = {
    K.BUCKET: delete_bucket,
    K.INSTANCE: delete_instance,
    K.SECURITY_GROUP: delete_security_group,
    K.ROUTE_TABLE: delete_route_table,
    K.PRIVATE_SUBNET: delete_private_subnet,
    K.PUBLIC_SUBNET: delete_public_subnet,
    K.GATEWAY: delete_gateway,
    K.NETWORK: delete_network,
    K.KEY_PAIR: delete_key_pair,
}
