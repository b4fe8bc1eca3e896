"""
Build observation input.

Two input shapes are read: the JSON document written by the build
observer (build-observations.json) and its plain trace log, one event per
line:

    open <process> <path>
    exec <path>
"""
import os
from pathlib import Path
from typing import List, Optional, Union

import utils
from configuration import Configuration as Config
from models.errors import ObservationParseError
from models.observations import BuildObservations


def _is_under(path: str, directory: str) -> bool:
    directory = directory.rstrip("/")
    return path == directory or path.startswith(directory + "/")


def is_external_dependency(path: str) -> bool:
    """
    Headers and pkg-config files shipped by the system, e.g. #include <stdio.h>.
    Software collection trees such as /opt/rh/gcc-toolset-12/root/usr match too.
    """
    return Config.include_search_root in path and path.endswith(Config.include_extensions)


def is_compiler_call(path: str) -> bool:
    return os.path.basename(path) in Config.toolchain_binaries


def dependency_observations(observations: BuildObservations) -> BuildObservations:
    """
    Reduce observations to the ones that name a dependency: external
    includes and toolchain executions. Files below the build's working
    directory belong to the project itself and are dropped.
    """
    workdir = observations.working_directory

    def in_workdir(path: str) -> bool:
        return bool(workdir) and _is_under(path, workdir)

    includes = {p for p in observations.files_opened if not in_workdir(p) and is_external_dependency(p)}
    calls = {p for p in observations.files_executed if not in_workdir(p) and is_compiler_call(p)}

    return BuildObservations(
        working_directory=workdir,
        files_opened=sorted(includes),
        files_executed=sorted(calls),
        start=observations.start,
        stop=observations.stop,
    )


def parse_observations_log(lines: List[str], working_directory: str = "") -> BuildObservations:
    observations = BuildObservations(working_directory=working_directory)

    for line_number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\n")
        # columns are aligned with runs of blanks or tabs
        head = line.split(None, 1)
        kind = head[0] if head else ""
        if kind == "open":
            fields = line.split(None, 2)
            if len(fields) != 3 or not fields[2].strip():
                raise ObservationParseError(line_number, line)
            observations.files_opened.append(fields[2].strip())
        elif kind == "exec":
            fields = line.split(None, 1)
            if len(fields) != 2 or not fields[1].strip():
                raise ObservationParseError(line_number, line)
            observations.files_executed.append(fields[1].strip())

    return observations


def observations_from_dict(data: dict) -> BuildObservations:
    return BuildObservations(
        working_directory=data.get("workingDirectory") or data.get("working_directory") or "",
        files_opened=list(data.get("filesOpened") or data.get("files_opened") or []),
        files_executed=list(data.get("filesExecuted") or data.get("files_executed") or []),
        start=data.get("start"),
        stop=data.get("stop"),
    )


def parse_observations_file(path: Union[str, Path], working_directory: Optional[str] = None) -> BuildObservations:
    """
    Read observations from `path`. `working_directory` overrides the one
    recorded in a JSON document. Trace logs carry none of their own, so
    they default to the current directory.
    """
    path = Path(path)

    if path.suffix == ".json":
        try:
            data = utils.read_json_file(path)
        except ValueError as e:
            raise ObservationParseError(getattr(e.__cause__, "lineno", 0), str(path)) from e
        if not isinstance(data, dict):
            raise ObservationParseError(1, str(path))
        observations = observations_from_dict(data)
        if working_directory is not None:
            observations.working_directory = working_directory
        return observations

    with path.open("r", encoding="utf-8", errors="replace") as f:
        return parse_observations_log(f.readlines(), working_directory or os.getcwd())
