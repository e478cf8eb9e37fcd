"""OpenStack flavor selection and credentials given on the command line."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

# Arguments used for OpenStack authentication, with their help texts.
OPENSTACK_CREDENTIALS_ARGUMENTS = (
    ("OS_AUTH_URL", "OpenStack auth url (e.g. http://10.0.2.15:5000/v2.0)"),
    ("OS_TENANT_ID", "OpenStack tenant id (e.g. 3dfe7bf545ff4885a3912a92a4a5f8e0)"),
    ("OS_TENANT_NAME", "OpenStack tenant name (e.g. admin)"),
    ("OS_PROJECT_NAME", "OpenStack project name (e.g. admin)"),
    ("OS_USERNAME", "OpenStack username (e.g. admin)"),
    ("OS_PASSWORD", "OpenStack password"),
    ("OS_REGION_NAME", "OpenStack region name (e.g. RegionOne)"),
)

# Arguments read when building credentials, in the order they are unpacked.
_AUTH_ARGUMENT_NAMES = (
    "OS_AUTH_URL",
    "OS_USERNAME",
    "OS_USERID",
    "OS_PASSWORD",
    "OS_TENANT_ID",
    "OS_TENANT_NAME",
    "OS_DOMAIN_ID",
    "OS_DOMAIN_NAME",
)


@dataclass(frozen=True)
class Flavor:
    """A compute flavor; disk is in GB and ram in MB."""

    id: str = ""
    name: str = ""
    disk: int = 0
    ram: int = 0
    vcpus: int = 0


@dataclass(frozen=True)
class AuthOptions:
    identity_endpoint: str = ""
    user_id: str = ""
    username: str = ""
    password: str = ""
    tenant_id: str = ""
    tenant_name: str = ""
    domain_id: str = ""
    domain_name: str = ""


def select_best_flavor(matching_flavors: Iterable[Flavor], verbose: bool = False) -> Flavor:
    """Pick the flavor with the smallest disk, then the smallest RAM.

    All given flavors are assumed to satisfy the disk and RAM requirements.
    """
    flavors = list(matching_flavors)
    if not flavors:
        raise ValueError("No matching flavors to pick from")
    best = min(flavors, key=lambda f: (f.disk, f.ram))
    if verbose:
        print(f"Picked flavor {best.name or best.id} (disk: {best.disk}GB, ram: {best.ram}MB)")
    return best


def auth_options_from_args(args: Mapping[str, str | None]) -> AuthOptions | None:
    """Build credentials from OS_* arguments.

    Returns None when none of the arguments is set, so that the caller can
    fall back to the environment.
    """
    values = tuple(args.get(name) or "" for name in _AUTH_ARGUMENT_NAMES)
    (
        auth_url,
        username,
        user_id,
        password,
        tenant_id,
        tenant_name,
        domain_id,
        domain_name,
    ) = values

    if not any(values):
        return None
    if not auth_url:
        raise ValueError("Argument --OS_AUTH_URL needs to be set.")
    if not username and not user_id:
        raise ValueError("Argument --OS_USERNAME needs to be set.")
    if not password:
        raise ValueError("Argument --OS_PASSWORD needs to be set.")
    if not tenant_name and not tenant_id:
        raise ValueError("Argument --OS_TENANT_NAME needs to be set.")

    return AuthOptions(
        identity_endpoint=auth_url,
        user_id=user_id,
        username=username,
        password=password,
        tenant_id=tenant_id,
        tenant_name=tenant_name,
        domain_id=domain_id,
        domain_name=domain_name,
    )