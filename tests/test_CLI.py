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
"""Unit tests for the jailconf command line interface."""
import typing
import json
import os
import os.path

import click.testing
import pytest

import jailconf
import libjailconf.Config.Host

import conftest


@pytest.fixture
def config_file(
    tmp_path: typing.Any,
    host: 'conftest.MockedHost'
) -> str:
    """Write a host config file pointing to the test directories."""
    path = os.path.join(str(tmp_path), "jailconf.json")
    with open(path, "w") as f:
        json.dump(dict(
            conf_dir=host.config.conf_dir,
            root_dir=host.config.root_dir,
            base_dir=host.config.base_dir,
            main_jail_conf=host.config.main_jail_conf
        ), f)
    return path


@pytest.fixture
def run(
    monkeypatch: typing.Any,
    config_file: str
) -> typing.Callable[..., click.testing.Result]:
    """Return a helper invoking jailconf as root with the test config."""
    monkeypatch.setattr(os, "geteuid", lambda: 0)
    runner = click.testing.CliRunner()

    def _run(*args: str) -> click.testing.Result:
        return runner.invoke(
            jailconf.cli,
            ["--config", config_file] + list(args),
            catch_exceptions=False
        )
    return _run


class TestCLI(object):
    """Run command line interface unit tests."""

    def test_list_commands(self) -> None:
        """Test that every command module is available."""
        commands = jailconf.cli.list_commands(None)
        assert commands == ["create", "delete", "fetch", "init", "list"]

    def test_init(
        self,
        run: typing.Callable[..., click.testing.Result],
        host_config: 'libjailconf.Config.Host.HostConfig'
    ) -> None:
        """Test that init adds the include line to jail.conf."""
        result = run("init")
        assert result.exit_code == 0
        with open(host_config.main_jail_conf, "r") as f:
            assert host_config.include_line in f.read()

    def test_create_list_delete(
        self,
        run: typing.Callable[..., click.testing.Result],
        base_archive: str,
        release_name: str,
        host: 'conftest.MockedHost'
    ) -> None:
        """Test the lifecycle of a jail on the command line."""
        result = run("create", "--release", release_name, "web1")
        assert result.exit_code == 0
        assert host.list_config_filenames() == ["1-web1.conf"]

        result = run("list", "--output-format", "json")
        assert result.exit_code == 0
        listing = json.loads(result.output)
        assert listing == [dict(
            slot="1",
            name="web1",
            ip4_addr="192.168.2.11",
            interface="epair1",
            root_exists="yes"
        )]

        result = run("list", "-f", "list", "--no-header", "-o", "name,slot")
        assert result.output.splitlines() == ["web1\t1"]

        result = run("delete", "--force", "web1")
        assert result.exit_code == 0
        assert host.list_config_filenames() == []
        assert os.listdir(host.config.root_dir) == []

    def test_create_from_bulk_document(
        self,
        tmp_path: typing.Any,
        run: typing.Callable[..., click.testing.Result],
        base_archive: str,
        release_name: str,
        host: 'conftest.MockedHost'
    ) -> None:
        """Test creating all jails of a bulk document."""
        bulk_file = os.path.join(str(tmp_path), "jails.json")
        with open(bulk_file, "w") as f:
            json.dump(dict(jails=[
                dict(name="web1", number=3, version=release_name),
                dict(name="db1", number=5, version=release_name)
            ]), f)

        result = run("create", "--config-file", bulk_file)
        assert result.exit_code == 0
        assert host.list_config_filenames() == ["3-web1.conf", "5-db1.conf"]

    def test_create_failure_exit_code(
        self,
        run: typing.Callable[..., click.testing.Result],
        host: 'conftest.MockedHost'
    ) -> None:
        """Test that a failed creation exits with an error."""
        result = run("create", "--release", "13.2-RELEASE", "web1")
        assert result.exit_code == 1
        assert host.list_config_filenames() == []

    def test_root_privileges(
        self,
        monkeypatch: typing.Any,
        config_file: str
    ) -> None:
        """Test that commands that modify the host require root."""
        monkeypatch.setattr(os, "geteuid", lambda: 1001)
        result = click.testing.CliRunner().invoke(
            jailconf.cli,
            ["--config", config_file, "create", "web1"]
        )
        assert result.exit_code == 1

    def test_list_with_unusable_slot(
        self,
        run: typing.Callable[..., click.testing.Result],
        host: 'conftest.MockedHost'
    ) -> None:
        """Test that jails without a network identity are still listed."""
        for filename in ["1-web1.conf", "250-legacy.conf"]:
            with open(host.get_conf_path(filename), "w") as f:
                f.write("")

        result = run(
            "list", "-f", "list", "--no-header", "-o", "name,ip4_addr"
        )
        assert result.exit_code == 0
        assert result.output.splitlines()[-2:] == [
            "web1\t192.168.2.11",
            "legacy\t-"
        ]
