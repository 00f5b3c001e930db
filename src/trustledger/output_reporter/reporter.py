# Copyright (c) 2022 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module contains reporter classes for writing security reports of the verification ledger."""

import abc
import json
import logging
import os
from copy import deepcopy

from jinja2 import (
    Environment,
    FileSystemLoader,
    TemplateNotFound,
    TemplateRuntimeError,
    TemplateSyntaxError,
    select_autoescape,
)

import trustledger.output_reporter.jinja2_extensions as jinja2_extensions  # pylint: disable=consider-using-from-import
from trustledger.output_reporter.security_report import SecurityReport

logger: logging.Logger = logging.getLogger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")


class FileReporter(abc.ABC):
    """The reporter that handles writing data to disk files."""

    def __init__(self, mode: str = "w", encoding: str = "utf-8"):
        """Initialize instance.

        Parameters
        ----------
        mode : str, optional
            The mode to open the target files, by default "w".
        encoding : str, optional
            The encoding used to handle disk files, by default "utf-8".
        """
        self.mode = mode
        self.encoding = encoding

    def write_file(self, file_path: str, data: str) -> bool:
        """Write the data into a file.

        Parameters
        ----------
        file_path : str
            The path to the target file.
        data : Any
            The data to write into the file.

        Returns
        -------
        bool
            True if succeeded else False.
        """
        try:
            with open(file_path, mode=self.mode, encoding=self.encoding) as file:
                logger.info("Writing to file %s", file_path)
                file.write(data)
                return True
        except OSError as error:
            logger.error("Cannot write to %s. Error: %s", file_path, error)
            return False

    @abc.abstractmethod
    def generate(self, target_dir: str, report: SecurityReport) -> str | None:
        """Generate a report file.

        This method is implemented in subclasses.

        Parameters
        ----------
        target_dir : str
            The directory to store all output files.
        report : SecurityReport
            The report to be generated.

        Returns
        -------
        str | None
            The path of the written file, or None if nothing was written.
        """


class JSONReporter(FileReporter):
    """This class handles writing reports to JSON files."""

    def __init__(self, mode: str = "w", encoding: str = "utf-8", indent: int = 4):
        """Initialize instance.

        Parameters
        ----------
        mode: str, optional
            The file operation mode.
        encoding: str, optional
            The encoding.
        indent : int, optional
            The indent for the JSON output, by default 4.
        """
        super().__init__(mode, encoding)
        self.indent = indent

    def generate(self, target_dir: str, report: SecurityReport) -> str | None:
        """Write the report to ``security_report.json`` in ``target_dir``.

        Parameters
        ----------
        target_dir : str
            The directory to store all output files.
        report: SecurityReport
            The report to be generated.

        Returns
        -------
        str | None
            The path of the written file, or None if nothing was written.
        """
        file_name = os.path.join(target_dir, "security_report.json")
        try:
            json_data = json.dumps(report.get_dict(), indent=self.indent)
        except (TypeError, ValueError) as error:
            logger.critical("Cannot serialize the security report to JSON: %s", error)
            return None
        return file_name if self.write_file(file_name, json_data) else None


class HTMLReporter(FileReporter):
    """This class handles writing reports to HTML files."""

    def __init__(
        self,
        mode: str = "w",
        encoding: str = "utf-8",
        env: Environment | None = None,
        target_template: str = "security_report.html",
    ) -> None:
        """Initialize instance.

        Parameters
        ----------
        mode: str, optional
            The file operation mode.
        encoding: str, optional
            The encoding.
        env : Environment | None
            The pre-initiated ``jinja2.Environment`` instance for the HTMLReporter. If this is not
            provided, a default jinja2.Environment will be initialized.
        target_template : str
            The target template. It will be looked up from the jinja2.Environment instance.
        """
        super().__init__(mode, encoding)
        if env:
            self.env = env
        else:
            self.env = Environment(
                loader=FileSystemLoader(TEMPLATE_DIR),
                autoescape=select_autoescape(enabled_extensions=["html", "j2"]),
                trim_blocks=True,
                lstrip_blocks=True,
            )

        self._init_extensions()

        self.template = None
        try:
            self.template = self.env.get_template(target_template)
        except TemplateNotFound:
            logger.error("Cannot find the template to load.")

    def _init_extensions(self) -> None:
        """Dynamically add Jinja2 extension filters and tests."""
        filters = {}
        tests = {}

        for name, custom_filter in jinja2_extensions.filter_extensions.items():
            if hasattr(jinja2_extensions, custom_filter):
                filters[name] = getattr(jinja2_extensions, custom_filter)

        for name, test in jinja2_extensions.test_extensions.items():
            if hasattr(jinja2_extensions, test):
                tests[name] = getattr(jinja2_extensions, test)

        self.env.tests.update(tests)
        self.env.filters.update(filters)

    def generate(self, target_dir: str, report: SecurityReport) -> str | None:
        """Render the report to ``security_report.html`` in ``target_dir``.

        The target_template is used to load the template within the initialized
        jinja2.Environment. If it failed to load, no HTML file will be generated.

        Parameters
        ----------
        target_dir : str
            The directory to store all output files.
        report: SecurityReport
            The report to be generated.

        Returns
        -------
        str | None
            The path of the written file, or None if nothing was written.
        """
        if not self.template:
            return None

        file_name = os.path.join(target_dir, "security_report.html")
        try:
            # Make a deep copy because we don't want to keep any modification from Jinja
            # in the original data.
            html = self.template.render(deepcopy(report.get_dict()))
        except TemplateSyntaxError as error:
            location = f"line {error.lineno}"
            name = error.filename or error.name
            if name:
                location = f'File "{name}", {location}'
            logger.error("jinja2.TemplateSyntaxError: \n\t%s\n\t%s", error.message, location)
            return None
        except TemplateRuntimeError as error:
            logger.error("jinja2.TemplateRunTimeError: %s", error)
            return None
        return file_name if self.write_file(file_name, html) else None
