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
"""jailconf Jail module."""
import typing
import os

import libjailconf.ConfigReconciler
import libjailconf.JailRecord
import libjailconf.Release
import libjailconf.SlotAllocator
import libjailconf.errors
import libjailconf.events
import libjailconf.helpers
import libjailconf.helpers_object

# MyPy
import libjailconf.Host  # noqa: F401
import libjailconf.Logger  # noqa: F401

ConfirmCallback = typing.Callable[['libjailconf.JailRecord.JailRecord'], bool]


class JailGenerator:
    """
    Asynchronous representation of a jail.

    Creating and destroying a jail are generators of events. The
    synchronous Jail class consumes them and returns the list of events.

    Example:

        jail = JailGenerator("web1", version="14.1-RELEASE")
        for event in jail.create():
            print(event.type, event.get_state_string())
    """

    record: 'libjailconf.JailRecord.JailRecord'
    _reconciler: typing.Optional[
        'libjailconf.ConfigReconciler.ConfigReconciler'
    ]

    def __init__(
        self,
        record: typing.Union['libjailconf.JailRecord.JailRecord', str],
        version: typing.Optional[str]=None,
        slot: typing.Optional[int]=None,
        extra_fields: typing.Optional[typing.Dict[str, typing.Any]]=None,
        template: typing.Optional[
            'libjailconf.ConfigReconciler.JailConfTemplate'
        ]=None,
        host: typing.Optional['libjailconf.Host.HostGenerator']=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:

        self.logger = libjailconf.helpers_object.init_logger(self, logger)
        self.host = libjailconf.helpers_object.init_host(self, host)

        if isinstance(record, libjailconf.JailRecord.JailRecord):
            self.record = record
        else:
            self.record = libjailconf.JailRecord.JailRecord(
                name=record,
                version=version,
                slot=slot,
                extra_fields=extra_fields,
                host_config=self.host.config,
                logger=self.logger
            )

        self._template = template
        self._reconciler = None

    @property
    def name(self) -> str:
        """Return the jail name."""
        return self.record.name

    @property
    def reconciler(self) -> 'libjailconf.ConfigReconciler.ConfigReconciler':
        """Return the lazy-loaded ConfigReconciler of the jail template."""
        if self._reconciler is None:
            self._reconciler = libjailconf.ConfigReconciler.ConfigReconciler(
                template=self._template,
                host=self.host,
                logger=self.logger
            )
        return self._reconciler

    @property
    def release(self) -> 'libjailconf.Release.ReleaseGenerator':
        """Return the base release the jail is created from."""
        return libjailconf.Release.ReleaseGenerator(
            name=self.record.require_version(),
            host=self.host,
            logger=self.logger
        )

    def _get_allocator(self) -> 'libjailconf.SlotAllocator.SlotAllocator':
        return libjailconf.SlotAllocator.SlotAllocator(
            self.host.list_config_filenames(),
            logger=self.logger
        )

    def locate(self) -> typing.Optional['libjailconf.JailRecord.JailRecord']:
        """Return the record with the slot of the configured jail or None."""
        existing = self._get_allocator().find(self.name)
        if existing is None:
            return None
        slot, _ = existing
        return self.record.with_slot(slot)

    @property
    def exists(self) -> bool:
        """Return True when a config file of the jail exists."""
        return (self.locate() is not None) is True

    def require_exists(self) -> 'libjailconf.JailRecord.JailRecord':
        """Return the located record or raise JailNotFound."""
        record = self.locate()
        if record is None:
            raise libjailconf.errors.JailNotFound(
                name=self.name,
                logger=self.logger
            )
        return record

    def create(
        self,
        event_scope: typing.Optional['libjailconf.events.Scope']=None
    ) -> typing.Generator['libjailconf.events.JailconfEvent', None, None]:
        """
        Create the jail from its base release.

        A jail whose config is already present and identical to the rendered
        template is skipped. Any failure after the root directory was
        created removes the root directory and a partially written config.

        Args:

            event_scope (libjailconf.events.Scope): (optional)

                Pass on the event stack for use in higher order functions.
        """
        events = libjailconf.events
        jailCreateEvent = events.JailCreate(
            jail=self,
            scope=event_scope
        )
        _scope = jailCreateEvent.scope

        yield jailCreateEvent.begin()
        try:
            yield from self._create(jailCreateEvent, _scope)
        except Exception as e:
            yield from jailCreateEvent.fail_generator(e)
            raise e

    def _create(
        self,
        jailCreateEvent: 'libjailconf.events.JailCreate',
        event_scope: 'libjailconf.events.Scope'
    ) -> typing.Generator['libjailconf.events.JailconfEvent', None, None]:
        events = libjailconf.events

        jailValidationEvent = events.JailValidation(
            jail=self,
            scope=event_scope
        )
        yield jailValidationEvent.begin()
        try:
            release = self.release
            release.require_fetched()
        except Exception as e:
            yield jailValidationEvent.fail(e)
            raise e
        yield jailValidationEvent.end()

        jailSlotAllocationEvent = events.JailSlotAllocation(
            jail=self,
            scope=event_scope
        )
        yield jailSlotAllocationEvent.begin()
        try:
            record = self._allocate_slot()
        except Exception as e:
            yield jailSlotAllocationEvent.fail(e)
            raise e
        yield jailSlotAllocationEvent.end(message=f"slot {record.slot}")

        jailConfigCheckEvent = events.JailConfigCheck(
            jail=self,
            scope=event_scope
        )
        yield jailConfigCheckEvent.begin()
        try:
            self.reconciler.validate(record)
            rendered = self.reconciler.render(record)
            config_exists = os.path.lexists(record.conf_path)
            if config_exists is True:
                self.reconciler.require_match(record)
            elif os.path.lexists(record.root_path) is True:
                raise libjailconf.errors.JailRootExists(
                    name=record.name,
                    root_path=record.root_path,
                    logger=self.logger
                )
        except Exception as e:
            yield jailConfigCheckEvent.fail(e)
            raise e

        if config_exists is True:
            self.logger.verbose(
                f"Jail '{record.name}' is already configured in "
                f"{record.conf_path}"
            )
            yield jailConfigCheckEvent.skip(message="config matches")
            yield jailCreateEvent.skip(message="already exists")
            return
        yield jailConfigCheckEvent.end()

        jailRootCreationEvent = events.JailRootCreation(
            jail=self,
            scope=event_scope
        )
        yield jailRootCreationEvent.begin()
        try:
            self.host.create_directory(
                record.root_path,
                base=self.host.config.root_dir
            )
        except Exception as e:
            yield jailRootCreationEvent.fail(e)
            raise e
        jailCreateEvent.add_rollback_step(
            lambda: self._remove_root_directory(record.root_path)
        )
        yield jailRootCreationEvent.end()

        baseArchiveExtractionEvent = events.BaseArchiveExtraction(
            jail=self,
            scope=event_scope
        )
        yield baseArchiveExtractionEvent.begin()
        try:
            self.host.extract_archive(
                release.archive_path,
                record.root_path
            )
        except Exception as e:
            yield baseArchiveExtractionEvent.fail(e)
            raise e
        yield baseArchiveExtractionEvent.end()

        jailConfigWriteEvent = events.JailConfigWrite(
            jail=self,
            scope=event_scope
        )
        yield jailConfigWriteEvent.begin()
        try:
            self.host.write_config_file(record.conf_path, rendered)
        except libjailconf.errors.ConfigAlreadyExists as e:
            yield jailConfigWriteEvent.fail(e)
            raise e
        except Exception as e:
            jailCreateEvent.add_rollback_step(
                lambda: self._remove_partial_config(record.conf_path)
            )
            yield jailConfigWriteEvent.fail(e)
            raise e
        yield jailConfigWriteEvent.end()

        self.record = record
        self.logger.verbose(
            f"Jail '{record.name}' was created with the address "
            f"{record.network_identity.ip_address}"
        )
        yield jailCreateEvent.end()

    def _allocate_slot(self) -> 'libjailconf.JailRecord.JailRecord':
        allocator = self._get_allocator()
        existing = allocator.find(self.name)
        declared_slot = self.record.slot

        if declared_slot is not None:
            identity = self.record.network_identity
            self.logger.spam(f"Slot {declared_slot} maps to {identity}")
            if (existing is not None) and (existing[0] != declared_slot):
                raise libjailconf.errors.JailAlreadyExists(
                    name=self.name,
                    conf_path=self.host.get_conf_path(existing[1]),
                    logger=self.logger
                )
            allocator.require_slot_free(declared_slot, self.name)
            return self.record

        if existing is not None:
            slot, filename = existing
            self.logger.debug(
                f"Jail '{self.name}' is already configured in {filename}"
            )
        else:
            slot = allocator.next_slot()
            self.logger.debug(f"Allocated slot {slot} for '{self.name}'")

        record = self.record.with_slot(slot)
        identity = record.network_identity
        self.logger.spam(f"Slot {slot} maps to {identity}")
        return record

    def _remove_root_directory(self, root_path: str) -> None:
        if os.path.isdir(root_path) is False:
            return
        self.logger.verbose(f"Reverting creation of {root_path}")
        try:
            self.host.clear_flags(root_path)
        except libjailconf.errors.ClearFlagsFailed:
            pass  # logged as warning, removal may still succeed
        self.host.remove_directory(root_path)

    def _remove_partial_config(self, conf_path: str) -> None:
        if os.path.isfile(conf_path) is False:
            return
        self.logger.verbose(f"Removing incomplete jail config {conf_path}")
        self.host.remove_config_file(conf_path)

    def destroy(
        self,
        confirm: typing.Optional[ConfirmCallback]=None,
        event_scope: typing.Optional['libjailconf.events.Scope']=None
    ) -> typing.Generator['libjailconf.events.JailconfEvent', None, None]:
        """
        Delete the jail config and root directory.

        Nothing is deleted unless the jail config is identical to the
        rendered template.

        Args:

            confirm (callable): (optional)

                Called with the located JailRecord before anything is
                deleted. The jail is kept when it returns False.

            event_scope (libjailconf.events.Scope): (optional)

                Pass on the event stack for use in higher order functions.
        """
        events = libjailconf.events
        jailDestroyEvent = events.JailDestroy(
            jail=self,
            scope=event_scope
        )
        _scope = jailDestroyEvent.scope

        yield jailDestroyEvent.begin()
        try:
            yield from self._destroy(jailDestroyEvent, confirm, _scope)
        except Exception as e:
            yield from jailDestroyEvent.fail_generator(e)
            raise e

    def _destroy(
        self,
        jailDestroyEvent: 'libjailconf.events.JailDestroy',
        confirm: typing.Optional[ConfirmCallback],
        event_scope: 'libjailconf.events.Scope'
    ) -> typing.Generator['libjailconf.events.JailconfEvent', None, None]:
        events = libjailconf.events

        jailConfigCheckEvent = events.JailConfigCheck(
            jail=self,
            scope=event_scope
        )
        yield jailConfigCheckEvent.begin()
        try:
            record = self.require_exists()
            if (self.record.slot is not None) and \
                    (self.record.slot != record.slot):
                self.logger.warn(
                    f"Jail '{self.name}' is configured with slot "
                    f"{record.slot} instead of {self.record.slot}"
                )
            self.reconciler.require_match(record)
        except Exception as e:
            yield jailConfigCheckEvent.fail(e)
            raise e
        yield jailConfigCheckEvent.end()

        if confirm is not None:
            jailDestroyConfirmationEvent = events.JailDestroyConfirmation(
                jail=self,
                scope=event_scope
            )
            yield jailDestroyConfirmationEvent.begin()
            if confirm(record) is False:
                yield jailDestroyConfirmationEvent.skip(message="declined")
                yield jailDestroyEvent.skip(message="declined")
                return
            yield jailDestroyConfirmationEvent.end()

        jailConfigRemovalEvent = events.JailConfigRemoval(
            jail=self,
            scope=event_scope
        )
        yield jailConfigRemovalEvent.begin()
        try:
            self.host.remove_config_file(record.conf_path)
        except Exception as e:
            yield jailConfigRemovalEvent.fail(e)
            raise e
        yield jailConfigRemovalEvent.end()

        root_path = record.root_path
        root_exists = os.path.isdir(root_path)

        jailFlagsClearEvent = events.JailFlagsClear(
            jail=self,
            scope=event_scope
        )
        yield jailFlagsClearEvent.begin()
        if root_exists is False:
            yield jailFlagsClearEvent.skip(message="no root directory")
        else:
            try:
                self.host.clear_flags(root_path)
                yield jailFlagsClearEvent.end()
            except libjailconf.errors.ClearFlagsFailed as e:
                yield jailFlagsClearEvent.skip(message=e.message)

        jailRootRemovalEvent = events.JailRootRemoval(
            jail=self,
            scope=event_scope
        )
        yield jailRootRemovalEvent.begin()
        if root_exists is False:
            self.logger.verbose(f"{root_path} does not exist")
            yield jailRootRemovalEvent.skip(message="no root directory")
        else:
            try:
                self.host.remove_directory(root_path)
            except Exception as e:
                yield jailRootRemovalEvent.fail(e)
                raise e
            yield jailRootRemovalEvent.end()

        self.logger.verbose(f"Jail '{self.name}' was deleted")
        yield jailDestroyEvent.end()

    def getstring(self, key: str) -> str:
        """Return a humanreadable property of the jail for listings."""
        record = self.record
        if key == "name":
            return record.name
        elif key in ["slot", "number"]:
            return libjailconf.helpers.to_string(record.slot)
        elif key == "version":
            return libjailconf.helpers.to_string(record.version)
        elif key in ["ip4_addr", "gateway", "interface"]:
            try:
                identity = record.derive_network_identity()
            except libjailconf.errors.InvalidSlot:
                return "-"
            if key == "ip4_addr":
                return str(identity.ip_address)
            elif key == "gateway":
                return str(identity.gateway)
            return identity.interface_name
        elif key == "conf_path":
            return record.conf_path
        elif key == "root_path":
            return record.root_path
        elif key == "root_exists":
            return libjailconf.helpers.to_string(
                os.path.isdir(record.root_path)
            )
        raise KeyError(key)

    def __repr__(self) -> str:
        """Return a readable representation of the jail."""
        return f"<Jail {self.name}>"


class Jail(JailGenerator):
    """Synchronous wrapper of JailGenerator."""

    def create(  # noqa: T484
        self,
        event_scope: typing.Optional['libjailconf.events.Scope']=None
    ) -> typing.List['libjailconf.events.JailconfEvent']:
        """Create the jail synchronously."""
        return list(JailGenerator.create(self, event_scope=event_scope))

    def destroy(  # noqa: T484
        self,
        confirm: typing.Optional[ConfirmCallback]=None,
        event_scope: typing.Optional['libjailconf.events.Scope']=None
    ) -> typing.List['libjailconf.events.JailconfEvent']:
        """Delete the jail synchronously."""
        return list(JailGenerator.destroy(
            self,
            confirm=confirm,
            event_scope=event_scope
        ))
