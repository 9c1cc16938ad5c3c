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
"""Unit tests for preparing the jail host."""
import os
import os.path

import pytest

import libjailconf.Config.Host
import libjailconf.Host
import libjailconf.errors
import libjailconf.Logger


class TestHost(object):
    """Run Host unit tests."""

    @pytest.fixture
    def empty_host(
        self,
        host_config: 'libjailconf.Config.Host.HostConfig',
        logger: 'libjailconf.Logger.Logger'
    ) -> 'libjailconf.Host.Host':
        """Return a host that was not yet initialized."""
        return libjailconf.Host.Host(config=host_config, logger=logger)

    def test_init_creates_directories(
        self,
        empty_host: 'libjailconf.Host.Host'
    ) -> None:
        """Test that init creates the jailconf directories."""
        assert empty_host.initialized is False
        empty_host.init()
        assert empty_host.initialized is True
        assert os.path.isdir(empty_host.config.conf_dir)
        assert os.path.isdir(empty_host.config.root_dir)
        assert os.path.isdir(empty_host.config.base_dir)

    def test_init_appends_include_line(
        self,
        empty_host: 'libjailconf.Host.Host'
    ) -> None:
        """Test that existing jail.conf content is preserved."""
        main_jail_conf = empty_host.config.main_jail_conf
        with open(main_jail_conf, "w") as f:
            f.write("exec.clean;")

        empty_host.init()

        with open(main_jail_conf, "r") as f:
            lines = f.read().splitlines()
        assert lines == ["exec.clean;", empty_host.config.include_line]

    def test_init_is_idempotent(
        self,
        empty_host: 'libjailconf.Host.Host'
    ) -> None:
        """Test that running init twice does not change the host."""
        empty_host.init()
        events = empty_host.init()

        with open(empty_host.config.main_jail_conf, "r") as f:
            content = f.read()
        assert content == f"{empty_host.config.include_line}\n"

        skipped = [event.type for event in events if event.skipped is True]
        assert skipped.count("DirectoryCreation") == 3
        assert "JailConfInclude" in skipped
        assert events[-1].type == "HostInit"
        assert events[-1].done is True

    def test_init_with_invalid_jail_conf_encoding(
        self,
        empty_host: 'libjailconf.Host.Host'
    ) -> None:
        """Test that a jail.conf that is not UTF-8 is left unchanged."""
        main_jail_conf = empty_host.config.main_jail_conf
        with open(main_jail_conf, "wb") as f:
            f.write(b"# \xff\n")

        with pytest.raises(libjailconf.errors.ConfigWriteError):
            empty_host.init()

        with open(main_jail_conf, "rb") as f:
            assert f.read() == b"# \xff\n"

    def test_list_config_filenames(
        self,
        host: 'libjailconf.Host.Host'
    ) -> None:
        """Test that only files of the config directory are listed."""
        for filename in ["2-b.conf", "1-a.conf"]:
            with open(host.get_conf_path(filename), "w") as f:
                f.write("")
        os.makedirs(host.get_conf_path("3-c.conf"))
        assert host.list_config_filenames() == ["1-a.conf", "2-b.conf"]

    def test_missing_config_directory(
        self,
        empty_host: 'libjailconf.Host.Host'
    ) -> None:
        """Test that a missing config directory is reported."""
        with pytest.raises(libjailconf.errors.ConfigDirectoryNotFound):
            empty_host.list_config_filenames()

    def test_config_files_are_never_overwritten(
        self,
        host: 'libjailconf.Host.Host'
    ) -> None:
        """Test that writing an existing config raises ConfigAlreadyExists."""
        path = host.get_conf_path("1-a.conf")
        host.write_config_file(path, b"first")
        with pytest.raises(libjailconf.errors.ConfigAlreadyExists):
            host.write_config_file(path, b"second")
        assert host.read_config_file(path) == b"first"

    def test_release_version(
        self,
        monkeypatch: 'pytest.MonkeyPatch',
        host: 'libjailconf.Host.Host'
    ) -> None:
        """Test that the host release is read from the kernel version."""
        monkeypatch.setattr(os, "uname", lambda: (
            "FreeBSD", "jailhost", "14.1-RELEASE-p5", "", "amd64"
        ))
        assert host.release_version == "14.1-RELEASE"

        monkeypatch.setattr(os, "uname", lambda: (
            "Linux", "host", "6", "", "x86_64"
        ))
        with pytest.raises(libjailconf.errors.HostReleaseUnknown):
            host.release_version
