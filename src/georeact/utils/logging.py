""" Timing log for GeoReact.

Logging of timings is controlled by the configuration file georeact.cfg, which should
be placed in the current working directory (where the python script is initiated).
All timing-related information is located in a section in the cfg-file with heading
logging; see sample file below.

By default, timing is switched off. It can be turned on by setting the keyword
'active' to True.

Timing is costly if applied to functions called many times, such as the residual
evaluations inside a solver loop. Functions are therefore classified by the following
(overlapping) sections, and only functions of active sections are timed:

    all: Used to time all decorated functions.
    chemistry: Thermodynamic models, mixtures and reactions.
    optimization: The interior point solver.
    equilibrium: Equilibrium and inverse equilibrium solves.
    kinetics: Kinetic time stepping.
    field: Batch computations over field points.

Example logging section of georeact.cfg:

    [logging]
    # Activate timing. Without this, the rest of the section has no effect
    active: True

    # To only time specific sections, use e.g.
    sections: equilibrium
    # multiple sections are separated by commas:
    sections: equilibrium, kinetics

Messages of the numerical modules themselves are emitted through the standard
``logging`` loggers named after the modules (``georeact.equilibrium...``) and are
configured by the application.

"""
import functools
import inspect
import logging
import os
import time
from typing import Sequence

import georeact as gr

__all__ = ["time_logger"]


# Try to access configuration information, as activated by the import of GeoReact
try:
    config = gr.config["logging"]
    raw_sections = config.get("sections", "all")
    active_sections = [s.strip().lower() for s in raw_sections.split(",")]
    logger_is_active = config.get("active", "false").strip().lower() == "true"
    always_log = "all" in active_sections

except KeyError:
    config = {}
    active_sections = ["all"]
    logger_is_active = False
    always_log = True

t_logger = logging.getLogger("GeoReactTimer")
t_logger.setLevel(logging.INFO)
t_logger.propagate = False


if logger_is_active and not t_logger.hasHandlers():
    # Write timings to file only if asked for, to not litter the working directory.
    time_handler = logging.FileHandler("GeoReactTimings.log")
    time_handler.setLevel(logging.INFO)
    time_formatter = logging.Formatter("%(message)s")
    time_handler.setFormatter(time_formatter)
    t_logger.addHandler(time_handler)

# Find where in the file path the directory 'georeact' is located.
# We will use this below to strip away the common parts of file names.
separator = os.sep
path_length = __file__.split(separator).index("georeact")


def time_logger(sections: Sequence[str]):
    """A decorator that measures ellapsed time for a function.

    Parameters:
        sections: Sections the decorated function belongs to. The function is timed if
            any of them is activated in georeact.cfg.

    """

    # The double nested function is needed to allow decorators with arguments
    def inner_func(func):
        @functools.wraps(func)
        def log_time(*args, **kwargs):
            if not logger_is_active:
                return func(*args, **kwargs)
            elif always_log or any([s in active_sections for s in sections]):
                # Name of the file, without the part above '/src/georeact'
                fn = separator.join(
                    inspect.getfile(func).split(separator)[path_length + 1 :]
                )
                name = f"{func.__qualname__} in file {fn}."

                t_logger.log(level=logging.INFO, msg=f"Calling {name}")

                start_time = time.perf_counter()
                value = func(*args, **kwargs)
                run_time = time.perf_counter() - start_time

                t_logger.log(
                    level=logging.INFO,
                    msg=f"Finished {name} Elapsed time: {run_time:.8f} s",
                )

                return value
            else:
                return func(*args, **kwargs)

        return log_time

    return inner_func
