# Copyright (c) 2022 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module contains the Jinja2 extension filters and tests.

All tests will have ``j2_test_`` as a prefix. The rest of the name will
be the name of that test in the Jinja2 Environment.

All filters will have ``j2_filter_`` as a prefix. The rest of the name will
be the name of that filter in the Jinja2 Environment.

References
----------
    - https://jinja.palletsprojects.com/en/3.1.x/api/#custom-filters
    - https://jinja.palletsprojects.com/en/3.1.x/api/#custom-tests
"""

from trustledger.output_reporter.security_report import DEFAULT_CRITICAL_REASONS
from trustledger.verification.enums import VerificationStatus


def j2_test_critical_reason(reason: str) -> bool:
    """Return True if the change reason is one of the default critical reasons.

    Parameters
    ----------
    reason : str
        The change reason as string.

    Returns
    -------
    bool
    """
    return reason in {critical.value for critical in DEFAULT_CRITICAL_REASONS}


def j2_filter_get_status_color(status: str) -> str:
    """Return the html class name for the color of a verification status.

    Parameters
    ----------
    status : str
        The verification status as string.

    Returns
    -------
    str
        The css class name with the corresponding color or an empty string if the status is not recognized.
    """
    try:
        verification_status = VerificationStatus(status)
    except ValueError:
        return ""
    match verification_status:
        case VerificationStatus.VERIFIED:
            return "green_bg"
        case VerificationStatus.PARTIAL:
            return "lightgreen_bg"
        case VerificationStatus.PENDING | VerificationStatus.UNVERIFIED:
            return "grey_bg"
        case VerificationStatus.FAILED:
            return "red_bg"
    return ""


filter_extensions: dict[str, str] = {
    filter_str.replace("j2_filter_", ""): filter_str for filter_str in dir() if filter_str.startswith("j2_filter_")
}
"""The mappings between the name of a filter and its function's name as defined in this module."""

test_extensions: dict[str, str] = {test.replace("j2_test_", ""): test for test in dir() if test.startswith("j2_test_")}
"""The mappings between the name of a test and its function's name as defined in this module."""
