# Copyright (c) 2017-2019, Stefan Grönke
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
"""Unit tests for the host configuration."""
import typing
import json
import os.path

import pytest

import libjailconf.Config.Host
import libjailconf.errors
import libjailconf.Logger


class TestHostConfig(object):
    """Run HostConfig unit tests."""

    def test_defaults(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test the default paths and network conventions."""
        config = libjailconf.Config.Host.HostConfig(logger=logger)
        assert config.conf_dir == "/etc/jail.conf.d"
        assert config.root_dir == "/var/jails"
        assert config.main_jail_conf == "/etc/jail.conf"
        assert config.address_prefix == "192.168.2."
        assert config.address_offset == 10
        assert config.gateway_address == "192.168.2.1"
        assert config.interface_prefix == "epair"
        assert config.bridge_interface == "bridge0"

    def test_include_line(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test the jail.conf directive including the config directory."""
        config = libjailconf.Config.Host.HostConfig(logger=logger)
        assert config.include_line == '.include "/etc/jail.conf.d/*.conf";'

    def test_paths_are_normalized(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that trailing slashes are removed from paths."""
        config = libjailconf.Config.Host.HostConfig(
            data=dict(root_dir="/usr/jails/"),
            logger=logger
        )
        assert config.root_dir == "/usr/jails"

    @pytest.mark.parametrize("key,value", [
        ("conf_dir", "relative/jail.conf.d"),
        ("root_dir", "/var/../jails"),
        ("root_dir", "/var//jails"),
        ("base_dir", 1),
        ("address_prefix", "192.168.2"),
        ("address_prefix", "192.168.300."),
        ("address_offset", -1),
        ("address_offset", "ten"),
        ("gateway_address", "192.168.2.300"),
        ("interface_prefix", "epair0"),
        ("bridge_interface", "bridge"),
        ("unknown_property", "value")
    ])
    def test_invalid_values(
        self,
        key: str,
        value: typing.Any,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that invalid values raise InvalidConfigValue."""
        config = libjailconf.Config.Host.HostConfig(logger=logger)
        with pytest.raises(libjailconf.errors.InvalidConfigValue):
            config[key] = value

    def test_read_json_file(
        self,
        tmp_path: typing.Any,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that a JSON file overrides the defaults."""
        config_file = os.path.join(str(tmp_path), "jailconf.json")
        with open(config_file, "w") as f:
            json.dump(dict(
                root_dir="/usr/local/jails",
                address_prefix="10.0.0.",
                address_offset=100
            ), f)

        config = libjailconf.Config.Host.read_host_config(
            file=config_file,
            overrides=dict(conf_dir="/usr/local/etc/jail.conf.d"),
            logger=logger
        )
        assert config.root_dir == "/usr/local/jails"
        assert config.address_prefix == "10.0.0."
        assert config.address_offset == 100
        assert config.conf_dir == "/usr/local/etc/jail.conf.d"
        assert config.gateway_address == "192.168.2.1"

    def test_missing_file_uses_defaults(
        self,
        tmp_path: typing.Any,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that a missing config file is not an error."""
        config = libjailconf.Config.Host.read_host_config(
            file=os.path.join(str(tmp_path), "missing.json"),
            logger=logger
        )
        assert config.conf_dir == "/etc/jail.conf.d"

    def test_malformed_file(
        self,
        tmp_path: typing.Any,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that unparsable JSON raises ConfigParseError."""
        config_file = os.path.join(str(tmp_path), "jailconf.json")
        with open(config_file, "w") as f:
            f.write("{\"root_dir\": ")
        with pytest.raises(libjailconf.errors.ConfigParseError):
            libjailconf.Config.Host.read_host_config(
                file=config_file,
                logger=logger
            )

    def test_file_with_invalid_encoding(
        self,
        tmp_path: typing.Any,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that config files that are not UTF-8 raise ConfigParseError."""
        config_file = os.path.join(str(tmp_path), "jailconf.json")
        with open(config_file, "wb") as f:
            f.write(b"{\"root_dir\": \"/jails/\xff\"}")
        with pytest.raises(libjailconf.errors.ConfigParseError):
            libjailconf.Config.Host.read_host_config(
                file=config_file,
                logger=logger
            )
