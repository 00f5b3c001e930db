# Copyright (c) 2022 - 2025, Oracle and/or its affiliates. All rights reserved.
# Licensed under the Universal Permissive License v 1.0 as shown at https://oss.oracle.com/licenses/upl/.

"""This module contains the GlobalConfig class to be used globally."""
import logging
from dataclasses import dataclass

logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class GlobalConfig:
    """Class for keeping track of global configurations."""

    #: The path to the trustledger Python package.
    trustledger_path: str = ""

    #: The path to the output files.
    output_path: str = ""

    #: The path or SQLAlchemy URL of the verification database.
    database: str = ""

    #: The debug level.
    debug_level: int = logging.DEBUG

    def load(
        self,
        trustledger_path: str,
        output_path: str,
        database: str,
        debug_level: int,
    ) -> None:
        """Initiate the GlobalConfig object.

        Parameters
        ----------
        trustledger_path : str
            The trustledger package root path.
        output_path : str
            Output path.
        database : str
            The database path or URL.
        debug_level : int
            The global debug level.
        """
        self.trustledger_path = trustledger_path
        self.output_path = output_path
        self.database = database
        self.debug_level = debug_level


global_config = GlobalConfig()
"""The object that can be imported and used globally."""
