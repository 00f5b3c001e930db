# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module decides whether a jar can be published given the verification method it achieved."""

import logging
from dataclasses import dataclass

from trustledger.config.defaults import defaults
from trustledger.errors import ConfigurationError, InvalidIdentifierError
from trustledger.verification.enums import VerificationMethod
from trustledger.verification.group_policy import GroupPolicyStore
from trustledger.verification.trust_hierarchy import TrustHierarchy, trust_hierarchy

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationRequirement:
    """The minimum verification method a deployment must achieve."""

    required_method: VerificationMethod
    is_legacy_provenance: bool
    is_new_project: bool

    def get_dict(self) -> dict:
        """Return the requirement as a dictionary."""
        return {
            "required_method": self.required_method.value,
            "is_legacy_provenance": self.is_legacy_provenance,
            "is_new_project": self.is_new_project,
        }


@dataclass(frozen=True)
class DeploymentDecision:
    """The admission decision for one deployment."""

    allowed: bool
    required_method: VerificationMethod

    #: The achieved method as given by the caller. It may be an unknown string or None.
    actual_method: str | None
    is_new_project: bool
    is_legacy_provenance: bool

    #: Why the deployment was rejected. None when it is allowed.
    reason: str | None = None

    def get_dict(self) -> dict:
        """Return the decision as a dictionary."""
        return {
            "allowed": self.allowed,
            "required_method": self.required_method.value,
            "actual_method": self.actual_method,
            "is_new_project": self.is_new_project,
            "is_legacy_provenance": self.is_legacy_provenance,
            "reason": self.reason,
        }


class DeploymentGate:
    """Combines the group policy and the trust hierarchy into a publish decision."""

    def __init__(self, policy_store: GroupPolicyStore, hierarchy: TrustHierarchy = trust_hierarchy) -> None:
        self.policy_store = policy_store
        self.hierarchy = hierarchy
        self.new_project_method = VerificationMethod.SOURCE_MATCH

    def load_defaults(self) -> None:
        """Load the default values from defaults.ini.

        Raises
        ------
        ConfigurationError
            If a method in the ``[deployment]`` section is unknown.
        """
        if "deployment" not in defaults:
            return
        try:
            self.new_project_method = VerificationMethod.from_wire(
                defaults.get("deployment", "new_project_method", fallback=self.new_project_method.value)
            )
        except InvalidIdentifierError as error:
            raise ConfigurationError(f"Invalid method in section [deployment]: {error}") from error

    def should_apply_new_project_defaults(self, group_name: str, jar_name: str) -> bool:
        """Return True if the group has no policy, so the strict defaults for new projects apply."""
        return self.policy_store.get_minimum_method(group_name) is None

    def get_requirement(self, group_name: str, jar_name: str) -> VerificationRequirement:
        """Return the verification requirement for a deployment of ``group_name/jar_name``.

        A group without a policy row, or with a row whose minimum method is unset, is a new project
        and must meet the strict default.
        """
        policy = self.policy_store.get_policy(group_name)
        if policy is None or policy.minimum_verification_method is None:
            return VerificationRequirement(
                required_method=self.new_project_method,
                is_legacy_provenance=False,
                is_new_project=True,
            )

        return VerificationRequirement(
            required_method=policy.minimum_verification_method,
            is_legacy_provenance=policy.legacy_provenance,
            is_new_project=False,
        )

    def check_deployment(
        self, group_name: str, jar_name: str, actual_method: VerificationMethod | str | None
    ) -> DeploymentDecision:
        """Decide whether a deployment that achieved ``actual_method`` can be published.

        Rejections are returned as decisions, never raised.

        Parameters
        ----------
        group_name : str
            The group of the jar.
        jar_name : str
            The name of the jar.
        actual_method : VerificationMethod | str | None
            The achieved method. Unknown strings and None rank as unverified.

        Returns
        -------
        DeploymentDecision
            The decision with a human readable reason when rejected.
        """
        requirement = self.get_requirement(group_name, jar_name)
        actual = str(actual_method) if actual_method is not None else None
        allowed = self.hierarchy.meets_requirement(actual, requirement.required_method)

        reason = None
        if not allowed:
            reason = (
                f"Deployment requires verification method '{requirement.required_method.value}' or higher, "
                f"but only '{actual or 'none'}' was provided"
            )
            logger.info("Rejected deployment of %s/%s: %s.", group_name, jar_name, reason)
        else:
            logger.debug(
                "Deployment of %s/%s with %s meets %s.", group_name, jar_name, actual, requirement.required_method
            )

        return DeploymentDecision(
            allowed=allowed,
            required_method=requirement.required_method,
            actual_method=actual,
            is_new_project=requirement.is_new_project,
            is_legacy_provenance=requirement.is_legacy_provenance,
            reason=reason,
        )
