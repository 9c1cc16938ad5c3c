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
"""Transient description of a jail and its derived identity."""
import typing
import os

import libjailconf.NetworkIdentity
import libjailconf.SlotAllocator
import libjailconf.errors
import libjailconf.helpers
import libjailconf.helpers_object

# MyPy
import libjailconf.Config.Host  # noqa: F401
import libjailconf.Logger  # noqa: F401

TemplateContext = typing.Dict[str, typing.Any]

DERIVED_FIELDS = (
    "name",
    "number",
    "slot",
    "version",
    "ip4_addr",
    "gateway",
    "interface",
    "interface_a",
    "interface_b",
    "bridge",
    "root_path",
    "conf_path"
)


class JailRecord:
    """
    A jail as described by its name, slot and base version.

    Records are never stored. They are projected from a config file name or
    from a jail definition on each invocation. Everything else, including
    the network identity and all paths, is derived from the slot and the
    host configuration.
    """

    name: str
    slot: typing.Optional[int]
    version: typing.Optional[str]
    extra_fields: typing.Dict[str, typing.Any]
    host_config: 'libjailconf.Config.Host.HostConfig'

    def __init__(
        self,
        name: str,
        host_config: 'libjailconf.Config.Host.HostConfig',
        slot: typing.Optional[int]=None,
        version: typing.Optional[str]=None,
        extra_fields: typing.Optional[typing.Dict[str, typing.Any]]=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        self.logger = libjailconf.helpers_object.init_logger(self, logger)

        if libjailconf.helpers.validate_name(name) is False:
            raise libjailconf.errors.InvalidJailName(
                name=name,
                logger=self.logger
            )

        self.name = name
        self.host_config = host_config
        self.slot = slot
        self.version = version
        self.extra_fields = dict(extra_fields or {})

    def require_version(self) -> str:
        """Return the base version or raise InvalidVersion."""
        version = self.version
        if isinstance(version, str) and (version.strip() != ""):
            return version
        raise libjailconf.errors.InvalidVersion(
            name=self.name,
            version=version,
            logger=self.logger
        )

    def require_slot(self) -> int:
        """Return the slot or raise InvalidSlot when it was not assigned."""
        slot = self.slot
        if isinstance(slot, bool) or (isinstance(slot, int) is False):
            raise libjailconf.errors.InvalidSlot(
                slot=slot,
                reason=f"jail '{self.name}' has no slot assigned",
                logger=self.logger
            )
        return typing.cast(int, slot)

    @property
    def network_identity(
        self
    ) -> 'libjailconf.NetworkIdentity.NetworkIdentity':
        """Return the network identity derived from the slot."""
        return self.derive_network_identity(logger=self.logger)

    def derive_network_identity(
        self,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> 'libjailconf.NetworkIdentity.NetworkIdentity':
        """Return the network identity, logging errors only with a logger."""
        config = self.host_config
        return libjailconf.NetworkIdentity.derive_identity(
            slot=self.require_slot(),
            address_prefix=config.address_prefix,
            address_offset=config.address_offset,
            gateway=config.gateway_address,
            interface_prefix=config.interface_prefix,
            logger=logger
        )

    @property
    def conf_filename(self) -> str:
        """Return the file name of the jail config."""
        return libjailconf.SlotAllocator.to_config_filename(
            slot=self.require_slot(),
            name=self.name
        )

    @property
    def conf_path(self) -> str:
        """Return the absolute path of the jail config file."""
        return os.path.join(self.host_config.conf_dir, self.conf_filename)

    @property
    def root_path(self) -> str:
        """Return the root directory of the jail."""
        return os.path.join(self.host_config.root_dir, self.name)

    @property
    def template_context(self) -> TemplateContext:
        """
        Return the fields available to jail config templates.

        Extra fields are passed through, but never replace a derived field.
        """
        identity = self.network_identity
        slot = self.require_slot()
        context: TemplateContext = dict(self.extra_fields)
        context.update({
            "name": self.name,
            "number": slot,
            "slot": slot,
            "ip4_addr": str(identity.ip_address),
            "gateway": str(identity.gateway),
            "interface": identity.interface_name,
            "interface_a": identity.interface_a,
            "interface_b": identity.interface_b,
            "bridge": self.host_config.bridge_interface,
            "root_path": self.root_path,
            "conf_path": self.conf_path
        })
        # records projected from a file name do not know their version
        if self.version is not None:
            context["version"] = self.version
        else:
            context.pop("version", None)
        return context

    def with_slot(self, slot: int) -> 'JailRecord':
        """Return a copy of the record with another slot."""
        return JailRecord(
            name=self.name,
            host_config=self.host_config,
            slot=slot,
            version=self.version,
            extra_fields=self.extra_fields,
            logger=self.logger
        )

    @classmethod
    def from_config_filename(
        cls,
        filename: str,
        host_config: 'libjailconf.Config.Host.HostConfig',
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> typing.Optional['JailRecord']:
        """Return the record of a jail config file or None."""
        parsed = libjailconf.SlotAllocator.parse_config_filename(filename)
        if parsed is None:
            return None
        slot, name = parsed
        if libjailconf.helpers.validate_name(name) is False:
            if logger is not None:
                logger.warn(f"Ignoring {filename}: invalid jail name")
            return None
        if slot <= 0:
            if logger is not None:
                logger.warn(f"Ignoring {filename}: slots must be positive")
            return None
        record = cls(
            name=name,
            slot=slot,
            host_config=host_config,
            logger=logger
        )
        try:
            record.derive_network_identity()
        except libjailconf.errors.InvalidSlot as e:
            if logger is not None:
                logger.warn(f"{filename} has no network identity: {e}")
        return record

    def __eq__(self, other: typing.Any) -> bool:
        """Compare two records by name, slot and version."""
        if isinstance(other, JailRecord) is False:
            return False
        return (
            (self.name == other.name) and
            (self.slot == other.slot) and
            (self.version == other.version)
        ) is True

    def __hash__(self) -> int:
        """Hash the record by name, slot and version."""
        return hash((self.name, self.slot, self.version))

    def __repr__(self) -> str:
        """Return a readable representation of the record."""
        return f"<JailRecord {self.slot}-{self.name} version={self.version}>"
