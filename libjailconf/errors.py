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
"""Collection of jailconf errors."""
import typing

# MyPy
import libjailconf.Logger  # noqa: F401


class JailconfException(Exception):
    """A well-known exception raised by libjailconf."""

    message: str
    cleanup_errors: typing.List[BaseException]

    def __init__(
        self,
        message: str,
        level: str="error",
        silent: bool=False,
        append_warning: bool=False,
        warning: typing.Optional[str]=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        self.message = message
        self.cleanup_errors = []
        if (logger is not None) and (silent is False):
            logger.__getattribute__(level)(message)
            if (append_warning is True) and (warning is not None):
                logger.warn(warning)
        super().__init__(message)

    def append_cleanup_error(self, error: BaseException) -> None:
        """Remember an error that occured while reverting partial changes."""
        self.cleanup_errors.append(error)

    def __str__(self) -> str:
        """Return the message including failed cleanup steps."""
        if len(self.cleanup_errors) == 0:
            return self.message
        cleanup_messages = "; ".join(map(str, self.cleanup_errors))
        return f"{self.message} (cleanup failed: {cleanup_messages})"


# Categories


class ValidationError(JailconfException):
    """Raised when user input is missing or malformed."""

    pass


class NotFoundError(JailconfException):
    """Raised when a referenced resource does not exist."""

    pass


class AlreadyExistsError(JailconfException):
    """Raised when a name, slot or file collides with an existing one."""

    pass


class DataConsistencyError(JailconfException):
    """Raised when the on-disk naming state is corrupted."""

    pass


class ExternalToolFailure(JailconfException):
    """Raised when an external tool or remote resource fails."""

    pass


class FilesystemError(JailconfException):
    """Raised when the filesystem cannot be accessed as expected."""

    pass


# Jails


class InvalidJailName(ValidationError):
    """Raised when a jail has an invalid name."""

    def __init__(
        self,
        name: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = (
            f"Invalid jail name '{name}': "
            "Names have to begin with a letter or digit and may only "
            "contain letters, digits, dashes and underscores"
        )
        ValidationError.__init__(self, message=msg, logger=logger)


class InvalidVersion(ValidationError):
    """Raised when a jail has no valid base version."""

    def __init__(
        self,
        name: str,
        version: typing.Any=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Jail '{name}' requires a base version, but got '{version}'"
        ValidationError.__init__(self, message=msg, logger=logger)


class JailNotFound(NotFoundError):
    """Raised when the jail was not found."""

    def __init__(
        self,
        name: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Jail '{name}' not found"
        NotFoundError.__init__(self, message=msg, logger=logger)


class JailAlreadyExists(AlreadyExistsError):
    """Raised when a jail with the same name already exists."""

    def __init__(
        self,
        name: str,
        conf_path: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Jail '{name}' already exists ({conf_path})"
        AlreadyExistsError.__init__(self, message=msg, logger=logger)


class SlotAlreadyInUse(AlreadyExistsError):
    """Raised when the slot is already assigned to another jail."""

    def __init__(
        self,
        slot: int,
        conf_path: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Slot {slot} is already in use by {conf_path}"
        AlreadyExistsError.__init__(self, message=msg, logger=logger)


class ConfigAlreadyExists(AlreadyExistsError):
    """Raised when an exclusively created config file already exists."""

    def __init__(
        self,
        conf_path: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"The jail config file {conf_path} was created concurrently"
        AlreadyExistsError.__init__(self, message=msg, logger=logger)


class JailRootExists(AlreadyExistsError):
    """Raised when the root directory of a new jail already exists."""

    def __init__(
        self,
        name: str,
        root_path: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = (
            f"The root directory {root_path} of jail '{name}' already exists "
            "without a matching jail config"
        )
        AlreadyExistsError.__init__(self, message=msg, logger=logger)


class DuplicateSlot(DataConsistencyError):
    """Raised when more than one config file claims the same slot."""

    def __init__(
        self,
        slot: int,
        filenames: typing.List[str],
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        files = ", ".join(filenames)
        msg = f"Slot {slot} is used by more than one jail config: {files}"
        DataConsistencyError.__init__(self, message=msg, logger=logger)


class DuplicateJailName(DataConsistencyError):
    """Raised when more than one config file claims the same jail name."""

    def __init__(
        self,
        name: str,
        filenames: typing.List[str],
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        files = ", ".join(filenames)
        msg = f"Jail '{name}' is configured more than once: {files}"
        DataConsistencyError.__init__(self, message=msg, logger=logger)


class InvalidSlot(ValidationError):
    """Raised when a slot cannot be mapped to a network identity."""

    def __init__(
        self,
        slot: typing.Any,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Invalid slot {slot}: {reason}"
        ValidationError.__init__(self, message=msg, logger=logger)


class ConfigDrift(JailconfException):
    """Raised when a jail config differs from its rendered template."""

    def __init__(
        self,
        name: str,
        conf_path: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = (
            f"The config of jail '{name}' at {conf_path} does not match "
            "the rendered template. Reconcile the file manually."
        )
        JailconfException.__init__(self, message=msg, logger=logger)


# Templates


class TemplateError(JailconfException):
    """Raised when a template cannot be used with a jail."""

    pass


class MissingTemplateField(TemplateError):
    """Raised when a template references a field the jail does not have."""

    def __init__(
        self,
        name: str,
        fields: typing.List[str],
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        _fields = ", ".join(sorted(fields))
        msg = f"The template requires undefined fields for '{name}': {_fields}"
        TemplateError.__init__(self, message=msg, logger=logger)


class TemplateSyntaxError(TemplateError):
    """Raised when a template cannot be parsed."""

    def __init__(
        self,
        template_name: str,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Invalid template {template_name}: {reason}"
        TemplateError.__init__(self, message=msg, logger=logger)


class RenderError(JailconfException):
    """Raised when rendering a template fails."""

    def __init__(
        self,
        name: str,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Rendering the config of jail '{name}' failed: {reason}"
        JailconfException.__init__(self, message=msg, logger=logger)


# Declarative Configuration


class MissingField(ValidationError):
    """Raised when a required field of a jail definition is missing."""

    def __init__(
        self,
        field: str,
        index: typing.Optional[int]=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Required field '{field}' is missing"
        if index is not None:
            msg += f" in jail definition #{index}"
        ValidationError.__init__(self, message=msg, logger=logger)


class InvalidFieldType(ValidationError):
    """Raised when a field of a jail definition has the wrong type."""

    def __init__(
        self,
        field: str,
        expected_type: str,
        index: typing.Optional[int]=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"'{field}' must be a {expected_type}"
        if index is not None:
            msg += f" in jail definition #{index}"
        ValidationError.__init__(self, message=msg, logger=logger)


class InvalidConfigValue(ValidationError):
    """Raised when a host config value is invalid."""

    def __init__(
        self,
        key: str,
        value: typing.Any,
        reason: typing.Optional[str]=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Invalid value for '{key}': {value}"
        if reason is not None:
            msg += f" ({reason})"
        ValidationError.__init__(self, message=msg, logger=logger)


class ConfigParseError(ValidationError):
    """Raised when a config file cannot be parsed."""

    def __init__(
        self,
        file: str,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Could not parse {file}: {reason}"
        ValidationError.__init__(self, message=msg, logger=logger)


class ConfigDirectoryNotFound(NotFoundError):
    """Raised when the jail config directory does not exist."""

    def __init__(
        self,
        directory: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = (
            f"The jail config directory {directory} does not exist. "
            "Please run 'jailconf init' first"
        )
        NotFoundError.__init__(self, message=msg, logger=logger)


# Filesystem


class ConfigReadError(FilesystemError):
    """Raised when a config file cannot be read."""

    def __init__(
        self,
        file: str,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Failed to read {file}: {reason}"
        FilesystemError.__init__(self, message=msg, logger=logger)


class ConfigWriteError(FilesystemError):
    """Raised when a config file cannot be written or removed."""

    def __init__(
        self,
        file: str,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Failed to write {file}: {reason}"
        FilesystemError.__init__(self, message=msg, logger=logger)


class DirectoryCreationFailed(FilesystemError):
    """Raised when a directory cannot be created."""

    def __init__(
        self,
        directory: str,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Failed to create directory {directory}: {reason}"
        FilesystemError.__init__(self, message=msg, logger=logger)


class DirectoryRemovalFailed(FilesystemError):
    """Raised when a directory cannot be removed."""

    def __init__(
        self,
        directory: str,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Failed to delete directory {directory}: {reason}"
        FilesystemError.__init__(self, message=msg, logger=logger)


class SecurityViolation(FilesystemError):
    """Raised when jailconf has security concerns."""

    def __init__(
        self,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Security violation: {reason}"
        FilesystemError.__init__(self, message=msg, logger=logger)


# Releases


class BaseArchiveNotFound(NotFoundError):
    """Raised when the base archive of a version was not downloaded."""

    def __init__(
        self,
        version: str,
        archive_path: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = (
            f"base.txz for version {version} not found at {archive_path}. "
            "Please run 'jailconf fetch' first"
        )
        NotFoundError.__init__(self, message=msg, logger=logger)


class InvalidReleaseName(ValidationError):
    """Raised when a release name cannot be used as directory name."""

    def __init__(
        self,
        name: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Invalid release name: {name}"
        ValidationError.__init__(self, message=msg, logger=logger)


class HostReleaseUnknown(NotFoundError):
    """Raised when the host release could not be determined."""

    def __init__(
        self,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = "The host release is unknown. Please specify a version"
        NotFoundError.__init__(self, message=msg, logger=logger)


class InvalidDownloadURL(ValidationError):
    """Raised when the release version cannot be derived from an URL."""

    def __init__(
        self,
        url: str,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Invalid download URL {url}: {reason}"
        ValidationError.__init__(self, message=msg, logger=logger)


# External Tools


class CommandFailure(ExternalToolFailure):
    """Raised when a command fails to execute."""

    def __init__(
        self,
        returncode: int,
        command: typing.Optional[str]=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        if command is None:
            msg = f"Command exited {returncode}"
        else:
            msg = f"Command exited {returncode}: {command}"
        ExternalToolFailure.__init__(self, message=msg, logger=logger)


class ArchiveExtractionFailed(ExternalToolFailure):
    """Raised when an archive could not be extracted."""

    def __init__(
        self,
        archive_path: str,
        destination: str,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Failed to extract {archive_path} to {destination}: {reason}"
        ExternalToolFailure.__init__(self, message=msg, logger=logger)


class IllegalArchiveContent(ExternalToolFailure):
    """Raised when an archive contains unsafe member names."""

    def __init__(
        self,
        asset_name: str,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Asset {asset_name} contains illegal files - {reason}"
        ExternalToolFailure.__init__(self, message=msg, logger=logger)


class DownloadFailed(ExternalToolFailure):
    """Raised when downloading a base archive failed."""

    def __init__(
        self,
        url: str,
        code: typing.Optional[int]=None,
        reason: typing.Optional[str]=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Failed downloading {url}"
        if code is not None:
            msg += f" (HTTP {code})"
        if reason is not None:
            msg += f": {reason}"
        ExternalToolFailure.__init__(self, message=msg, logger=logger)


class ClearFlagsFailed(ExternalToolFailure):
    """Raised when file flags could not be cleared."""

    def __init__(
        self,
        path: str,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Failed to clear file flags of {path}: {reason}"
        ExternalToolFailure.__init__(
            self,
            message=msg,
            level="warn",
            logger=logger
        )


# Logger


class InvalidLogLevel(ValidationError):
    """Raised when the logger was initialized with an invalid log level."""

    def __init__(
        self,
        log_level: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        available_log_levels = libjailconf.Logger.Logger.LOG_LEVELS
        available_log_levels_string = ", ".join(available_log_levels)
        msg = (
            f"Invalid log-level '{log_level}'. "
            f"Choose one of {available_log_levels_string}"
        )
        ValidationError.__init__(self, message=msg, logger=logger)


class CannotRedrawLine(JailconfException):
    """Raised when the logger cannot redraw a line."""

    def __init__(
        self,
        reason: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"Logger can't redraw line: {reason}"
        JailconfException.__init__(self, message=msg, logger=logger)


# Events


class EventAlreadyFinished(JailconfException):
    """Raised when a finished event is started again."""

    def __init__(
        self,
        event: 'libjailconf.events.JailconfEvent',
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        msg = f"This {event.type} event is already finished"
        JailconfException.__init__(self, message=msg, logger=logger)
