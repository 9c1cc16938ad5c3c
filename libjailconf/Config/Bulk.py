# Copyright (c) 2017-2019, Stefan Grönke
# Copyright (c) 2014-2018, iocage
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted providing that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR ``AS IS'' AND ANY EXPRESS OR
# IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR ANY
# DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING
# IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""
Declarative jail definitions for bulk operations.

A bulk document lists the jails of a host::

    {
        "jails": [
            {"name": "web1", "number": 1, "version": "14.1-RELEASE"},
            {"name": "db1", "number": 2, "version": "14.1-RELEASE",
             "comment": "extra fields are passed to the template"}
        ]
    }
"""
import typing
import os.path

import libjailconf.JailRecord
import libjailconf.errors
import libjailconf.helpers_object
import libjailconf.Config.Prototype

# MyPy
import libjailconf.Config.Host  # noqa: F401
import libjailconf.Logger  # noqa: F401

JailDefinition = typing.Dict[str, typing.Any]

REQUIRED_FIELDS: typing.Dict[str, typing.Tuple[type, str]] = {
    "name": (str, "string"),
    "number": (int, "integer"),
    "version": (str, "string")
}


def _is_whole_float(value: typing.Any) -> bool:
    # JSON numbers such as 1.0
    return isinstance(value, float) and (value.is_integer() is True)


class BulkConfig:
    """A validated list of jail definitions."""

    definitions: typing.List[JailDefinition]
    file: typing.Optional[str]

    def __init__(
        self,
        definitions: typing.List[JailDefinition],
        file: typing.Optional[str]=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        self.logger = libjailconf.helpers_object.init_logger(self, logger)
        self.file = file
        for index, definition in enumerate(definitions):
            self.validate_definition(definition, index=index)
        definitions = [
            self._normalize_number(definition)
            for definition in definitions
        ]
        self._require_unique(definitions)
        self.definitions = definitions

    @classmethod
    def load(
        cls,
        file: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> 'BulkConfig':
        """Read and validate a JSON or UCL bulk document."""
        if os.path.isfile(file) is False:
            raise libjailconf.errors.ConfigReadError(
                file=file,
                reason="No such file",
                logger=logger
            )
        config_class = libjailconf.Config.Prototype.get_config_class(file)
        data = config_class(file=file, logger=logger).read()
        return cls.from_dict(data, file=file, logger=logger)

    @classmethod
    def from_dict(
        cls,
        data: typing.Dict[str, typing.Any],
        file: typing.Optional[str]=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> 'BulkConfig':
        """Return the BulkConfig of a parsed bulk document."""
        if "jails" not in data.keys():
            raise libjailconf.errors.MissingField(
                field="jails",
                logger=logger
            )
        definitions = data["jails"]
        if isinstance(definitions, list) is False:
            raise libjailconf.errors.InvalidFieldType(
                field="jails",
                expected_type="list",
                logger=logger
            )
        return cls(definitions, file=file, logger=logger)

    def validate_definition(
        self,
        definition: typing.Any,
        index: typing.Optional[int]=None
    ) -> None:
        """Raise when a jail definition misses or mistypes a field."""
        if isinstance(definition, dict) is False:
            raise libjailconf.errors.InvalidFieldType(
                field="jail definition",
                expected_type="object",
                index=index,
                logger=self.logger
            )

        for field, (field_type, type_name) in REQUIRED_FIELDS.items():
            if field not in definition.keys():
                raise libjailconf.errors.MissingField(
                    field=field,
                    index=index,
                    logger=self.logger
                )
            value = definition[field]
            if (field == "number") and _is_whole_float(value):
                continue
            if isinstance(value, bool) or \
                    (isinstance(value, field_type) is False):
                raise libjailconf.errors.InvalidFieldType(
                    field=field,
                    expected_type=type_name,
                    index=index,
                    logger=self.logger
                )

        for field in self._get_extra_fields(definition).keys():
            if field in libjailconf.JailRecord.DERIVED_FIELDS:
                self.logger.warn(
                    f"Field '{field}' of '{definition['name']}' is ignored "
                    "because it is derived from the jail number"
                )

    def _normalize_number(self, definition: JailDefinition) -> JailDefinition:
        number = definition["number"]
        if isinstance(number, float) is False:
            return definition
        return dict(definition, number=int(number))

    def _require_unique(
        self,
        definitions: typing.List[JailDefinition]
    ) -> None:
        names: typing.Dict[str, int] = {}
        numbers: typing.Dict[int, int] = {}
        for index, definition in enumerate(definitions):
            name = definition["name"]
            number = definition["number"]
            if name in names.keys():
                raise libjailconf.errors.DuplicateJailName(
                    name=name,
                    filenames=[
                        f"jail definition #{names[name]}",
                        f"jail definition #{index}"
                    ],
                    logger=self.logger
                )
            if number in numbers.keys():
                raise libjailconf.errors.DuplicateSlot(
                    slot=number,
                    filenames=[
                        f"jail definition #{numbers[number]}",
                        f"jail definition #{index}"
                    ],
                    logger=self.logger
                )
            names[name] = index
            numbers[number] = index

    def _get_extra_fields(self, definition: JailDefinition) -> JailDefinition:
        return dict(
            (key, value)
            for key, value in definition.items()
            if key not in REQUIRED_FIELDS.keys()
        )

    @property
    def names(self) -> typing.List[str]:
        """Return the names of all defined jails."""
        return [definition["name"] for definition in self.definitions]

    def filter(self, name: typing.Optional[str]=None) -> 'BulkConfig':
        """
        Return a BulkConfig with only the named jail.

        Without a name all definitions are returned. An unknown name raises
        JailNotFound.
        """
        if name is None:
            return self
        definitions = [
            definition
            for definition in self.definitions
            if definition["name"] == name
        ]
        if len(definitions) == 0:
            raise libjailconf.errors.JailNotFound(
                name=name,
                logger=self.logger
            )
        return BulkConfig(definitions, file=self.file, logger=self.logger)

    def records(
        self,
        host_config: 'libjailconf.Config.Host.HostConfig'
    ) -> typing.List['libjailconf.JailRecord.JailRecord']:
        """Return a JailRecord for every definition."""
        return [
            libjailconf.JailRecord.JailRecord(
                name=definition["name"],
                slot=definition["number"],
                version=definition["version"],
                extra_fields=self._get_extra_fields(definition),
                host_config=host_config,
                logger=self.logger
            )
            for definition in self.definitions
        ]

    def __len__(self) -> int:
        """Return the number of jail definitions."""
        return len(self.definitions)

    def __iter__(self) -> typing.Iterator[JailDefinition]:
        """Iterate over the jail definitions."""
        return iter(self.definitions)
