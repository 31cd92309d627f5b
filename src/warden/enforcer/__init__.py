"""
Policy enforcer module for Warden.

The enforcer is the narrow, mockable surface over the policy engine.
The authorizer only ever calls PolicyEnforcer.enforce(); the role and
policy primitives are there for hosts that manage policy at runtime.
"""

from warden.enforcer.base import PolicyEnforcer
from warden.enforcer.casbin_adapter import CasbinEnforcer, default_model_text

__all__ = [
    "PolicyEnforcer",
    "CasbinEnforcer",
    "default_model_text",
]
