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
"""jailconf Host module."""
import typing
import os
import shutil

import libjailconf.Config.Host
import libjailconf.SecureTarfile
import libjailconf.errors
import libjailconf.events
import libjailconf.helpers
import libjailconf.helpers_object

# MyPy
import libjailconf.Logger  # noqa: F401


class HostGenerator:
    """
    Asynchronous representation of the jail host.

    The host owns the filesystem side of jailconf: the jail config directory,
    the jail root directories and the base archives. All file system access
    of jails and releases goes through this object.
    """

    _config: typing.Optional['libjailconf.Config.Host.HostConfig']

    def __init__(
        self,
        config: typing.Optional['libjailconf.Config.Host.HostConfig']=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        self.logger = libjailconf.helpers_object.init_logger(self, logger)
        self._config = config

    @property
    def config(self) -> 'libjailconf.Config.Host.HostConfig':
        """Return the lazy-loaded host configuration."""
        if self._config is None:
            self._config = libjailconf.Config.Host.read_host_config(
                logger=self.logger
            )
        return self._config

    @property
    def release_version(self) -> str:
        """Return the host release version (e.g. 14.1-RELEASE)."""
        release_version_string = os.uname()[2]
        release_version_fragments = release_version_string.split("-")

        if len(release_version_fragments) > 1:
            return "-".join(release_version_fragments[0:2])

        raise libjailconf.errors.HostReleaseUnknown(logger=self.logger)

    def list_config_filenames(self) -> typing.List[str]:
        """Return the names of all files in the jail config directory."""
        conf_dir = self.config.conf_dir
        try:
            return sorted(
                entry.name
                for entry in os.scandir(conf_dir)
                if entry.is_file() is True
            )
        except FileNotFoundError:
            raise libjailconf.errors.ConfigDirectoryNotFound(
                directory=conf_dir,
                logger=self.logger
            )
        except OSError as e:
            raise libjailconf.errors.ConfigReadError(
                file=conf_dir,
                reason=str(e),
                logger=self.logger
            )

    def get_conf_path(self, filename: str) -> str:
        """Return the absolute path of a file in the config directory."""
        return os.path.join(self.config.conf_dir, filename)

    def read_config_file(self, path: str) -> bytes:
        """Read a jail config file as it is stored on disk."""
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise libjailconf.errors.ConfigReadError(
                file=path,
                reason=str(e),
                logger=self.logger
            )

    def write_config_file(self, path: str, data: bytes) -> None:
        """
        Create a jail config file.

        The file is created exclusively. An existing file is never
        overwritten and raises ConfigAlreadyExists.
        """
        self.logger.verbose(f"Writing jail config {path}")
        libjailconf.helpers.require_no_symlink(
            path,
            base=self.config.conf_dir,
            logger=self.logger
        )
        try:
            with open(path, "xb") as f:
                f.write(data)
        except FileExistsError:
            raise libjailconf.errors.ConfigAlreadyExists(
                conf_path=path,
                logger=self.logger
            )
        except OSError as e:
            raise libjailconf.errors.ConfigWriteError(
                file=path,
                reason=str(e),
                logger=self.logger
            )

    def remove_config_file(self, path: str) -> None:
        """Delete a jail config file."""
        self.logger.verbose(f"Deleting jail config {path}")
        try:
            os.remove(path)
        except OSError as e:
            raise libjailconf.errors.ConfigWriteError(
                file=path,
                reason=str(e),
                logger=self.logger
            )

    def create_directory(self, path: str, base: str) -> None:
        """Create a new directory below a base directory."""
        try:
            libjailconf.helpers.makedirs_safe(
                path,
                base=base,
                exist_ok=False,
                logger=self.logger
            )
        except OSError as e:
            raise libjailconf.errors.DirectoryCreationFailed(
                directory=path,
                reason=str(e),
                logger=self.logger
            )

    def extract_archive(self, archive_path: str, destination: str) -> None:
        """Extract a base archive into a directory."""
        libjailconf.SecureTarfile.extract(
            file=archive_path,
            destination=destination,
            logger=self.logger
        )

    def clear_flags(self, path: str) -> None:
        """
        Clear the immutable file flags of a directory tree.

        FreeBSD base systems contain files with the schg flag set. Those
        files cannot be removed until the flags were cleared.
        """
        self.logger.verbose(f"Clearing file flags of {path}")
        try:
            libjailconf.helpers.exec(
                ["/bin/chflags", "-R", "noschg,nouchg", path],
                logger=self.logger
            )
        except libjailconf.errors.CommandFailure as e:
            raise libjailconf.errors.ClearFlagsFailed(
                path=path,
                reason=e.message,
                logger=self.logger
            )
        except OSError as e:
            raise libjailconf.errors.ClearFlagsFailed(
                path=path,
                reason=str(e),
                logger=self.logger
            )

    def remove_directory(self, path: str) -> None:
        """Recursively delete a directory."""
        self.logger.verbose(f"Deleting directory {path}")
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise libjailconf.errors.DirectoryRemovalFailed(
                directory=path,
                reason=str(e),
                logger=self.logger
            )

    def init(
        self,
        event_scope: typing.Optional['libjailconf.events.Scope']=None
    ) -> typing.Generator['libjailconf.events.JailconfEvent', None, None]:
        """
        Prepare the host for managing jails.

        The jail config directory is included in the main jail.conf and the
        directories used by jailconf are created. Running init again does
        not change an already prepared host.
        """
        events = libjailconf.events
        hostInitEvent = events.HostInit(scope=event_scope)
        _scope = hostInitEvent.scope

        yield hostInitEvent.begin()

        try:
            for directory in [
                self.config.conf_dir,
                self.config.root_dir,
                self.config.base_dir
            ]:
                yield from self._init_directory(directory, _scope)
            yield from self._init_include_line(_scope)
        except Exception as e:
            yield from hostInitEvent.fail_generator(e)
            raise e

        yield hostInitEvent.end()

    def _init_directory(
        self,
        directory: str,
        event_scope: 'libjailconf.events.Scope'
    ) -> typing.Generator['libjailconf.events.JailconfEvent', None, None]:
        directoryCreationEvent = libjailconf.events.DirectoryCreation(
            directory=directory,
            scope=event_scope
        )
        yield directoryCreationEvent.begin()

        if os.path.isdir(directory) is True:
            yield directoryCreationEvent.skip("already exists")
            return

        try:
            libjailconf.helpers.makedirs_safe(directory, logger=self.logger)
        except OSError as e:
            error = libjailconf.errors.DirectoryCreationFailed(
                directory=directory,
                reason=str(e),
                logger=self.logger
            )
            yield from directoryCreationEvent.fail_generator(error)
            raise error

        yield directoryCreationEvent.end()

    def _init_include_line(
        self,
        event_scope: 'libjailconf.events.Scope'
    ) -> typing.Generator['libjailconf.events.JailconfEvent', None, None]:
        jailConfIncludeEvent = libjailconf.events.JailConfInclude(
            scope=event_scope
        )
        yield jailConfIncludeEvent.begin()

        main_jail_conf = self.config.main_jail_conf
        include_line = self.config.include_line

        try:
            content = self._read_main_jail_conf()
            if include_line in content.splitlines():
                yield jailConfIncludeEvent.skip("already included")
                return

            self.logger.verbose(
                f"Adding the jail config directory to {main_jail_conf}"
            )
            with open(main_jail_conf, "a", encoding="UTF-8") as f:
                if (content != "") and (content.endswith("\n") is False):
                    f.write("\n")
                f.write(f"{include_line}\n")
        except (OSError, UnicodeDecodeError) as e:
            error = libjailconf.errors.ConfigWriteError(
                file=main_jail_conf,
                reason=str(e),
                logger=self.logger
            )
            yield from jailConfIncludeEvent.fail_generator(error)
            raise error

        yield jailConfIncludeEvent.end()

    def _read_main_jail_conf(self) -> str:
        try:
            with open(self.config.main_jail_conf, "r", encoding="UTF-8") as f:
                return f.read()
        except FileNotFoundError:
            return ""

    @property
    def initialized(self) -> bool:
        """Return True when the jail config directory exists."""
        return os.path.isdir(self.config.conf_dir) is True


class Host(HostGenerator):
    """Synchronous wrapper of HostGenerator."""

    def init(  # noqa: T484
        self,
        event_scope: typing.Optional['libjailconf.events.Scope']=None
    ) -> typing.List['libjailconf.events.JailconfEvent']:
        """Prepare the host synchronously."""
        return list(HostGenerator.init(self, event_scope=event_scope))
