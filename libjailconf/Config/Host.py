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
Host configuration of jailconf.

All paths and network conventions used by jailconf are kept in one
HostConfig policy object. The values are taken from the defaults, optionally
overridden by a JSON (or UCL) file and finally by explicit user input::

    {
        "conf_dir": "/etc/jail.conf.d",
        "root_dir": "/var/jails",
        "base_dir": "/var/db/jailconf/base",
        "address_prefix": "192.168.2.",
        "address_offset": 10,
        "gateway_address": "192.168.2.1"
    }
"""
import typing
import ipaddress
import os
import re

import libjailconf.errors
import libjailconf.helpers
import libjailconf.helpers_object
import libjailconf.Config.Prototype

# MyPy
import libjailconf.Logger  # noqa: F401

DEFAULT_CONFIG_FILE = "/usr/local/etc/jailconf.json"
CONFIG_FILE_ENVIRONMENT_VARIABLE = "JAILCONF_CONFIG"

_address_prefix_pattern = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.$")
_interface_prefix_pattern = re.compile(r"^[a-z]+$")
_interface_name_pattern = re.compile(r"^[a-z]+[0-9]+$")
_illegal_path_pattern = re.compile(r"(//)|(/\.\./)|(/\.\.$)|[\n\r]")


class HostConfig:
    """Policy object holding the host paths and network conventions."""

    DEFAULTS: typing.Dict[str, typing.Union[str, int]] = {
        "conf_dir": "/etc/jail.conf.d",
        "root_dir": "/var/jails",
        "base_dir": "/var/db/jailconf/base",
        "main_jail_conf": "/etc/jail.conf",
        "address_prefix": "192.168.2.",
        "address_offset": 10,
        "gateway_address": "192.168.2.1",
        "interface_prefix": "epair",
        "bridge_interface": "bridge0"
    }

    PATH_KEYS = (
        "conf_dir",
        "root_dir",
        "base_dir",
        "main_jail_conf"
    )

    data: typing.Dict[str, typing.Union[str, int]]

    def __init__(
        self,
        data: typing.Optional[typing.Dict[str, typing.Any]]=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        self.logger = libjailconf.helpers_object.init_logger(self, logger)
        self.data = dict(self.DEFAULTS)
        if data is not None:
            self.set_dict(data)

    def set_dict(self, data: typing.Dict[str, typing.Any]) -> None:
        """Apply all non-empty values of a dict to the configuration."""
        for key, value in data.items():
            if value is None:
                continue
            self[key] = value

    def read(self, file: str) -> None:
        """Read configuration overrides from a JSON or UCL file."""
        config_class = libjailconf.Config.Prototype.get_config_class(file)
        config_file = config_class(file=file, logger=self.logger)
        if config_file.exists is False:
            self.logger.spam(f"Host config {file} not found - using defaults")
            return
        self.logger.debug(f"Reading host config from {file}")
        self.set_dict(config_file.read())

    def __getitem__(self, key: str) -> typing.Any:
        """Return a configuration value."""
        return self.data[key]

    def __setitem__(self, key: str, value: typing.Any) -> None:
        """Validate and set a configuration value."""
        if key not in self.DEFAULTS.keys():
            raise libjailconf.errors.InvalidConfigValue(
                key=key,
                value=value,
                reason="unknown host config property",
                logger=self.logger
            )
        self.data[key] = self._parse(key, value)

    def __contains__(self, key: str) -> bool:
        """Return True when the key is a known config property."""
        return key in self.data

    def keys(self) -> typing.KeysView[str]:
        """Return the config property names."""
        return self.data.keys()

    def _parse(self, key: str, value: typing.Any) -> typing.Union[str, int]:
        try:
            if key in self.PATH_KEYS:
                return self._parse_path(value)
            elif key == "address_prefix":
                return self._parse_address_prefix(value)
            elif key == "address_offset":
                return self._parse_address_offset(value)
            elif key == "gateway_address":
                return str(ipaddress.IPv4Address(value))
            elif key == "interface_prefix":
                return self._parse_pattern(value, _interface_prefix_pattern)
            elif key == "bridge_interface":
                return self._parse_pattern(value, _interface_name_pattern)
        except (TypeError, ValueError) as e:
            raise libjailconf.errors.InvalidConfigValue(
                key=key,
                value=value,
                reason=str(e),
                logger=self.logger
            )
        return str(value)

    def _parse_path(self, value: typing.Any) -> str:
        if isinstance(value, str) is False:
            raise TypeError("paths must be strings")
        if value.startswith("/") is False:
            raise ValueError("paths must be absolute")
        if _illegal_path_pattern.search(value) is not None:
            raise ValueError(f"illegal path: {value}")
        return os.path.normpath(value)

    def _parse_address_prefix(self, value: typing.Any) -> str:
        if isinstance(value, str) is False:
            raise TypeError("address prefix must be a string")
        match = _address_prefix_pattern.match(value)
        if match is None:
            raise ValueError("expected three octets followed by a dot")
        for octet in match.groups():
            if int(octet) > 255:
                raise ValueError(f"octet {octet} is out of range")
        return str(value)

    def _parse_address_offset(self, value: typing.Any) -> int:
        offset = libjailconf.helpers.parse_int(value)
        if offset < 0:
            raise ValueError("must not be negative")
        return offset

    def _parse_pattern(
        self,
        value: typing.Any,
        pattern: typing.Pattern[str]
    ) -> str:
        if isinstance(value, str) is False:
            raise TypeError("must be a string")
        if pattern.match(value) is None:
            raise ValueError(f"must match {pattern.pattern}")
        return str(value)

    @property
    def conf_dir(self) -> str:
        """Return the directory of the per-jail config files."""
        return str(self.data["conf_dir"])

    @property
    def root_dir(self) -> str:
        """Return the directory the jail root directories are created in."""
        return str(self.data["root_dir"])

    @property
    def base_dir(self) -> str:
        """Return the directory of downloaded base archives."""
        return str(self.data["base_dir"])

    @property
    def main_jail_conf(self) -> str:
        """Return the path of the main jail.conf."""
        return str(self.data["main_jail_conf"])

    @property
    def address_prefix(self) -> str:
        """Return the IPv4 prefix jail addresses are derived from."""
        return str(self.data["address_prefix"])

    @property
    def address_offset(self) -> int:
        """Return the offset added to the slot in the last octet."""
        return int(self.data["address_offset"])

    @property
    def gateway_address(self) -> str:
        """Return the default gateway of the jails."""
        return str(self.data["gateway_address"])

    @property
    def interface_prefix(self) -> str:
        """Return the name prefix of the virtual interface pairs."""
        return str(self.data["interface_prefix"])

    @property
    def bridge_interface(self) -> str:
        """Return the host bridge the jail interfaces are added to."""
        return str(self.data["bridge_interface"])

    @property
    def include_line(self) -> str:
        """Return the jail.conf directive that includes all jail configs."""
        return f'.include "{self.conf_dir}/*.conf";'


def get_config_file() -> str:
    """Return the host config file selected by the environment."""
    return os.environ.get(
        CONFIG_FILE_ENVIRONMENT_VARIABLE,
        DEFAULT_CONFIG_FILE
    )


def read_host_config(
    file: typing.Optional[str]=None,
    overrides: typing.Optional[typing.Dict[str, typing.Any]]=None,
    logger: typing.Optional['libjailconf.Logger.Logger']=None
) -> HostConfig:
    """
    Load the host configuration.

    Args:

        file (str): (optional)
            Path to a JSON or UCL host config file. Defaults to the file
            named by $JAILCONF_CONFIG or /usr/local/etc/jailconf.json.

        overrides (dict): (optional)
            Values that take precedence over the config file.
    """
    host_config = HostConfig(logger=logger)
    host_config.read(get_config_file() if (file is None) else file)
    if overrides is not None:
        host_config.set_dict(overrides)
    return host_config
