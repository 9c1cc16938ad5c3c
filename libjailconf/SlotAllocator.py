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
Allocate jail slots from the names of jail config files.

Every jail config is stored as ``{slot}-{name}.conf``. The directory listing
is the only index of used slots, so that allocating a slot requires no other
state than the list of existing file names.
"""
import typing
import re

import libjailconf.errors

# MyPy
import libjailconf.Logger  # noqa: F401

_config_filename_pattern = re.compile(r"^(?P<slot>[0-9]+)-(?P<name>.+)\.conf$")

ParsedFilename = typing.Tuple[int, str]


def parse_config_filename(filename: str) -> typing.Optional[ParsedFilename]:
    """
    Return slot and name of a jail config file name.

    The name is split at the first dash. File names not matching the
    convention are not jail configs and return None.

    Usage:
        >>> parse_config_filename("2-web-1.conf")
        (2, 'web-1')
        >>> parse_config_filename("notes.txt")
        None
        >>> parse_config_filename("abc-def.conf")
        None
    """
    match = _config_filename_pattern.match(filename)
    if match is None:
        return None
    return int(match["slot"]), str(match["name"])


def to_config_filename(slot: int, name: str) -> str:
    """Return the config file name of a jail."""
    return f"{slot}-{name}.conf"


def next_slot(
    existing_filenames: typing.Iterable[str],
    logger: typing.Optional['libjailconf.Logger.Logger']=None
) -> int:
    """
    Return the lowest unused slot.

    Gaps left by deleted jails are filled before the range is extended.
    Duplicate slots indicate a corrupted naming state and raise DuplicateSlot
    instead of returning an allocation.
    """
    return SlotAllocator(existing_filenames, logger=logger).next_slot()


class SlotAllocator:
    """Slot and name lookups on a listing of jail config file names."""

    _entries: typing.List[typing.Tuple[int, str, str]]

    def __init__(
        self,
        filenames: typing.Iterable[str],
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        self.logger = logger
        self._entries = []
        for filename in sorted(filenames):
            parsed = parse_config_filename(filename)
            if parsed is None:
                if logger is not None:
                    logger.spam(f"Ignoring {filename}")
                continue
            slot, name = parsed
            self._entries.append((slot, name, filename))

    @property
    def filenames(self) -> typing.List[str]:
        """Return the file names of all jail configs."""
        return [filename for _, _, filename in self._entries]

    @property
    def slots(self) -> typing.List[int]:
        """Return all used slots in ascending order."""
        return sorted(slot for slot, _, _ in self._entries)

    @property
    def names(self) -> typing.List[str]:
        """Return all configured jail names."""
        return [name for _, name, _ in self._entries]

    def find(self, name: str) -> typing.Optional[ParsedFilename]:
        """
        Return slot and config file name of a jail by its name.

        A name configured by more than one file raises DuplicateJailName.
        """
        matches = [
            (slot, filename)
            for slot, _name, filename in self._entries
            if _name == name
        ]
        if len(matches) == 0:
            return None
        if len(matches) > 1:
            raise libjailconf.errors.DuplicateJailName(
                name=name,
                filenames=[filename for _, filename in matches],
                logger=self.logger
            )
        return matches[0]

    def find_slot(self, slot: int) -> typing.Optional[str]:
        """Return the config file name that uses a slot."""
        matches = self._get_filenames_of_slot(slot)
        if len(matches) > 1:
            raise libjailconf.errors.DuplicateSlot(
                slot=slot,
                filenames=matches,
                logger=self.logger
            )
        return matches[0] if (len(matches) == 1) else None

    def require_slot_free(self, slot: int, name: str) -> None:
        """Raise SlotAlreadyInUse when another jail uses the slot."""
        filename = self.find_slot(slot)
        if filename is None:
            return
        parsed = typing.cast(ParsedFilename, parse_config_filename(filename))
        _, used_by = parsed
        if used_by != name:
            raise libjailconf.errors.SlotAlreadyInUse(
                slot=slot,
                conf_path=filename,
                logger=self.logger
            )

    def require_unique_slots(self) -> None:
        """Raise DuplicateSlot when a slot is claimed by more than one file."""
        seen: typing.Set[int] = set()
        for slot in self.slots:
            if slot in seen:
                raise libjailconf.errors.DuplicateSlot(
                    slot=slot,
                    filenames=self._get_filenames_of_slot(slot),
                    logger=self.logger
                )
            seen.add(slot)

    def next_slot(self) -> int:
        """Return the lowest unused positive slot."""
        self.require_unique_slots()

        # slot 0 is not part of the slot namespace
        used_slots = [slot for slot in self.slots if slot > 0]

        if len(used_slots) == 0:
            return 1

        for index, slot in enumerate(used_slots):
            expected = index + 1
            if slot != expected:
                return expected

        return used_slots[-1] + 1

    def _get_filenames_of_slot(self, slot: int) -> typing.List[str]:
        return [
            filename
            for _slot, _, filename in self._entries
            if _slot == slot
        ]
