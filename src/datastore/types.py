"""Shared types for the datastore package."""

Row = list[str]
Schema = dict[str, str]
Params = tuple | list | dict
ParamsList = list[tuple] | list[list]
