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
"""jailconf module of jail collections."""
import typing

import libjailconf.Jail
import libjailconf.JailRecord
import libjailconf.helpers_object

# MyPy
import libjailconf.ConfigReconciler  # noqa: F401
import libjailconf.Host  # noqa: F401
import libjailconf.Logger  # noqa: F401


class JailsGenerator:
    """
    Asynchronous representation of the configured jails.

    The collection is projected from the jail config directory. File names
    not following the `<slot>-<name>.conf` convention are ignored.
    """

    names: typing.Optional[typing.List[str]]

    def __init__(
        self,
        names: typing.Optional[typing.List[str]]=None,
        template: typing.Optional[
            'libjailconf.ConfigReconciler.JailConfTemplate'
        ]=None,
        host: typing.Optional['libjailconf.Host.HostGenerator']=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:

        self.logger = libjailconf.helpers_object.init_logger(self, logger)
        self.host = libjailconf.helpers_object.init_host(self, host)
        self.names = names
        self.template = template

    @property
    def _class_jail(self) -> typing.Type['libjailconf.Jail.JailGenerator']:
        return libjailconf.Jail.JailGenerator

    @property
    def records(self) -> typing.List['libjailconf.JailRecord.JailRecord']:
        """Return the records of all configured jails ordered by slot."""
        records = []
        for filename in self.host.list_config_filenames():
            record = libjailconf.JailRecord.JailRecord.from_config_filename(
                filename,
                host_config=self.host.config,
                logger=self.logger
            )
            if record is None:
                continue
            if (self.names is not None) and (record.name not in self.names):
                continue
            records.append(record)
        return sorted(records, key=lambda record: (record.slot, record.name))

    def _create_resource_instance(
        self,
        record: 'libjailconf.JailRecord.JailRecord'
    ) -> 'libjailconf.Jail.JailGenerator':
        return self._class_jail(
            record,
            template=self.template,
            host=self.host,
            logger=self.logger
        )

    def __iter__(
        self
    ) -> typing.Iterator['libjailconf.Jail.JailGenerator']:
        """Iterate over the configured jails."""
        for record in self.records:
            yield self._create_resource_instance(record)

    def __len__(self) -> int:
        """Return the number of configured jails."""
        return len(self.records)

    def __getitem__(self, index: int) -> 'libjailconf.Jail.JailGenerator':
        """Return the JailGenerator at a certain index position."""
        return self._create_resource_instance(self.records[index])


class Jails(JailsGenerator):
    """Synchronous wrapper of JailsGenerator."""

    @property
    def _class_jail(self) -> typing.Type['libjailconf.Jail.Jail']:
        return libjailconf.Jail.Jail

    def __getitem__(self, index: int) -> 'libjailconf.Jail.Jail':
        """Return the Jail object at a certain index position."""
        jail = JailsGenerator.__getitem__(self, index)
        return typing.cast('libjailconf.Jail.Jail', jail)
