# Copyright (c) 2024 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module contains the parser for POM files."""
import logging
import re
from xml.etree.ElementTree import Element  # nosec B405

import defusedxml.ElementTree
from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring

logger: logging.Logger = logging.getLogger(__name__)


def parse_pom_string(pom_string: str) -> Element | None:
    """
    Parse the passed POM string using defusedxml.

    Parameters
    ----------
    pom_string : str
        The contents of a POM file as a string.

    Returns
    -------
    Element | None
        The parsed element representing the POM's XML hierarchy.
    """
    try:
        # Stored here first to help with type checking.
        pom: Element = fromstring(pom_string)
        return pom
    except (DefusedXmlException, defusedxml.ElementTree.ParseError) as error:
        logger.debug("Failed to parse XML: %s", error)
        return None


def find_element(parent: Element | None, target: str) -> Element | None:
    """Return the first child of ``parent`` with the tag ``target``, ignoring the Maven namespace."""
    if parent is None:
        return None

    for child in parent:
        # Handle raw tags, and tags accompanied by Maven metadata enclosed in curly braces. E.g. '{metadata}tag'
        if child.tag == target or child.tag.endswith(f"}}{target}"):
            return child
    return None


def find_text(pom: Element, path: str, resolve_properties: bool = True) -> str | None:
    """Return the stripped text of the element at the ``.`` separated ``path`` below ``pom``.

    Parameters
    ----------
    pom : Element
        The parsed POM.
    path : str
        The tag path, e.g. ``scm.url``. Paths below ``properties.`` are not split further.
    resolve_properties : bool
        Whether to resolve ``${project.x}`` and ``${x}`` properties defined in the same POM.

    Returns
    -------
    str | None
        The text, or None if the element is missing, empty, or refers to an unresolvable property.

    Examples
    --------
    >>> pom = parse_pom_string("<project><version>1.0</version><scm><tag>v${project.version}</tag></scm></project>")
    >>> find_text(pom, "scm.tag")
    'v1.0'
    """
    if path.startswith("properties."):
        # Property names are often "." separated, but nested tags are not allowed there.
        tag_parts = ["properties", path[11:]]
    else:
        tag_parts = path.split(".")

    element: Element | None = pom
    for tag_part in tag_parts:
        element = find_element(element, tag_part)
        if element is None:
            return None

    if element is None or not element.text or not element.text.strip():
        return None
    text = element.text.strip()
    return _resolve_properties(pom, text) if resolve_properties else text


def _resolve_properties(pom: Element, value: str) -> str | None:
    """Resolve the properties found within ``value``. Only the top most property of a chain is evaluated."""
    replacements: list[tuple[int, str, int]] = []
    for match in re.finditer("\\$\\{[^}]+}", value):
        name = match.group()[2:-1]
        path = name.replace("project.", "", 1) if name.startswith("project.") else f"properties.{name}"
        # Resolve without further property resolution to prevent endless looping.
        result = find_text(pom, path, False)
        if result is None:
            logger.debug("Could not resolve the property %s in %s.", match.group(), value)
            return None
        replacements.append((match.start(), result, match.end()))

    # Apply replacements in reverse order so the earlier offsets stay valid.
    for start, result, end in reversed(replacements):
        value = f"{value[:start]}{result}{value[end:]}"
    return value
