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
"""Prototype of a file based jailconf configuration."""
import typing
import os.path

import libjailconf.errors
import libjailconf.helpers_object

# MyPy
import libjailconf.Logger  # noqa: F401


ConfigDataDict = typing.Dict[str, typing.Any]


class Prototype:
    """Prototype of a configuration file."""

    config_type: str = "prototype"
    logger: 'libjailconf.Logger.Logger'
    _file: str

    def __init__(
        self,
        file: typing.Optional[str]=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:

        self.logger = libjailconf.helpers_object.init_logger(self, logger)

        if file is not None:
            self._file = file

    @property
    def file(self) -> str:
        """Return the path to the config file."""
        return self._file

    @file.setter
    def file(self, value: str) -> None:
        self._file = value

    def read(self) -> ConfigDataDict:
        """
        Read from the configuration file.

        A missing file is read as empty configuration.
        """
        try:
            with open(self.file, "r", encoding="UTF-8") as data:
                return self.map_input(data)
        except FileNotFoundError:
            return {}
        except UnicodeDecodeError as e:
            raise libjailconf.errors.ConfigParseError(
                file=self.file,
                reason=str(e),
                logger=self.logger
            )
        except OSError as e:
            raise libjailconf.errors.ConfigReadError(
                file=self.file,
                reason=str(e),
                logger=self.logger
            )

    def map_input(self, data: typing.TextIO) -> ConfigDataDict:
        """
        Map input data (for reading from the configuration).

        Implementing classes provide individual mappings.
        """
        raise NotImplementedError("Mapping not implemented on the prototype")

    def _require_dict(self, data: typing.Any) -> ConfigDataDict:
        if isinstance(data, dict) is False:
            raise libjailconf.errors.ConfigParseError(
                file=self.file,
                reason="The top level element must be an object",
                logger=self.logger
            )
        return dict(data)

    @property
    def exists(self) -> bool:
        """Return True when the configuration file exists on the filesystem."""
        return os.path.isfile(self.file)


def get_config_class(file: str) -> typing.Type[Prototype]:
    """Return the config class matching a file name extension."""
    if file.endswith(".ucl"):
        import libjailconf.Config.Type.UCL
        return libjailconf.Config.Type.UCL.ConfigUCL
    import libjailconf.Config.Type.JSON
    return libjailconf.Config.Type.JSON.ConfigJSON
