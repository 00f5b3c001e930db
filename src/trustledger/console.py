# Copyright (c) 2025 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module implements a rich console handler for logging and for showing command results."""

import logging
from typing import Any

from rich.logging import RichHandler
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table


class TableBuilder:
    """Builder to provide common table-building utilities for console classes."""

    @staticmethod
    def _make_table(content: dict, columns: list[str]) -> Table:
        table = Table(show_header=False, box=None)
        for col in columns:
            table.add_column(col, justify="left")
        for field, value in content.items():
            table.add_row(field, "" if value is None else str(value))
        return table

    @staticmethod
    def _make_rows_table(rows: list[dict]) -> Table:
        table = Table(box=None)
        headers: list[str] = []
        for row in rows:
            for key in row:
                if key not in headers:
                    headers.append(key)
        for header in headers:
            table.add_column(header, justify="left")
        for row in rows:
            table.add_row(*("" if row.get(header) is None else str(row.get(header)) for header in headers))
        return table


class RichConsoleHandler(RichHandler, TableBuilder):
    """A rich console handler for logging that also renders the results of commands."""

    def __init__(self, *args: Any, verbose: bool = False, **kwargs: Any) -> None:
        """
        Initialize the RichConsoleHandler.

        Parameters
        ----------
        verbose : bool, optional
            if True, enables verbose logging, by default False
        args
            Variable length argument list.
        kwargs
            Arbitrary keyword arguments.
        """
        super().__init__(*args, show_path=verbose, **kwargs)
        self.setLevel(logging.DEBUG if verbose else logging.INFO)
        self.verbose = verbose
        self.error_logs: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        """
        Emit a log record with rich formatting and remember the errors.

        Parameters
        ----------
        record : logging.LogRecord
            The log record to be emitted.
        """
        if record.levelno >= logging.ERROR:
            self.error_logs.append(record.getMessage())
        super().emit(record)

    def show_details(self, title: str, content: dict) -> None:
        """Print a titled two-column table of ``content``."""
        self.console.print(Rule(f" {title.upper()}", align="left"))
        self.console.print(self._make_table(content, ["Detail", "Value"]))

    def show_rows(self, title: str, rows: list[dict]) -> None:
        """Print a titled table with one row per dictionary."""
        self.console.print(Rule(f" {title.upper()}", align="left"))
        if not rows:
            self.console.print("[white not italic]None[/]")
            return
        self.console.print(self._make_rows_table(rows))

    def show_decision(self, allowed: bool, reason: str | None) -> None:
        """Print an admission decision."""
        if allowed:
            self.console.print("[bold green]ALLOWED[/]")
        else:
            self.console.print(Panel(reason or "Rejected.", title="REJECTED", title_align="left", border_style="red"))

    def error(self, message: str) -> None:
        """
        Print an error panel.

        Parameters
        ----------
        message : str
            The error message to be shown.
        """
        self.console.print(Panel(message, title="Error", title_align="left", border_style="red"))


class AccessHandler:
    """A class to manage access to the RichConsoleHandler instance."""

    def __init__(self) -> None:
        """Initialize the AccessHandler with a default RichConsoleHandler instance."""
        self.rich_handler = RichConsoleHandler()

    def set_handler(self, verbose: bool) -> RichConsoleHandler:
        """
        Set a new RichConsoleHandler instance with the specified verbosity.

        Parameters
        ----------
        verbose : bool
            if True, enables verbose logging

        Returns
        -------
        RichConsoleHandler
            The new RichConsoleHandler instance.
        """
        self.rich_handler = RichConsoleHandler(verbose=verbose)
        return self.rich_handler

    def get_handler(self) -> RichConsoleHandler:
        """
        Get the current RichConsoleHandler instance.

        Returns
        -------
        RichConsoleHandler
            The current RichConsoleHandler instance.
        """
        return self.rich_handler


access_handler = AccessHandler()
