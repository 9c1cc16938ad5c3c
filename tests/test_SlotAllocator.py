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
"""Unit tests for slot allocation from jail config file names."""
import pytest

import libjailconf.SlotAllocator
import libjailconf.errors
import libjailconf.Logger


class TestSlotAllocator(object):
    """Run SlotAllocator unit tests."""

    def test_empty_directory_allocates_the_first_slot(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that the first jail gets slot 1."""
        assert libjailconf.SlotAllocator.next_slot([], logger=logger) == 1

    def test_gaps_are_filled_first(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that the lowest unused slot is returned."""
        filenames = ["1-a.conf", "2-b.conf", "4-d.conf"]
        slot = libjailconf.SlotAllocator.next_slot(filenames, logger=logger)
        assert slot == 3

    def test_contiguous_slots_extend_the_range(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that the slot after the highest is returned without gaps."""
        filenames = ["1-a.conf", "2-b.conf", "3-c.conf"]
        slot = libjailconf.SlotAllocator.next_slot(filenames, logger=logger)
        assert slot == 4

    def test_unsorted_listing(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that the order of the directory listing is irrelevant."""
        filenames = ["4-d.conf", "1-a.conf", "2-b.conf"]
        slot = libjailconf.SlotAllocator.next_slot(filenames, logger=logger)
        assert slot == 3

    def test_missing_first_slot(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that slot 1 is reused after the first jail was deleted."""
        filenames = ["2-b.conf", "3-c.conf"]
        slot = libjailconf.SlotAllocator.next_slot(filenames, logger=logger)
        assert slot == 1

    def test_foreign_files_are_ignored(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that files not following the naming convention are ignored."""
        filenames = [
            "notes.txt",
            "abc-def.conf",
            "1-a.conf.bak",
            "1-a.conf",
            "README"
        ]
        slot = libjailconf.SlotAllocator.next_slot(filenames, logger=logger)
        assert slot == 2

    def test_slot_zero_is_not_allocated(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that a jail config with slot 0 does not occupy slot 1."""
        filenames = ["0-x.conf", "2-b.conf"]
        slot = libjailconf.SlotAllocator.next_slot(filenames, logger=logger)
        assert slot == 1

    def test_duplicate_slots_are_rejected(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that two configs claiming the same slot raise DuplicateSlot."""
        filenames = ["1-a.conf", "2-b.conf", "2-c.conf"]
        with pytest.raises(libjailconf.errors.DuplicateSlot) as excinfo:
            libjailconf.SlotAllocator.next_slot(filenames, logger=logger)
        assert "2-b.conf" in str(excinfo.value)
        assert "2-c.conf" in str(excinfo.value)

    def test_allocation_is_idempotent(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that the same listing always allocates the same slot."""
        filenames = ["1-a.conf", "3-c.conf"]
        allocator = libjailconf.SlotAllocator.SlotAllocator(
            filenames,
            logger=logger
        )
        assert allocator.next_slot() == 2
        assert allocator.next_slot() == 2

    def test_parse_config_filename(self) -> None:
        """Test that the name is split at the first dash."""
        parse = libjailconf.SlotAllocator.parse_config_filename
        assert parse("2-web-1.conf") == (2, "web-1")
        assert parse("12-db.conf") == (12, "db")
        assert parse("notes.txt") is None
        assert parse("abc-def.conf") is None
        assert parse("3-.conf") is None

    def test_to_config_filename(self) -> None:
        """Test the config file name convention."""
        filename = libjailconf.SlotAllocator.to_config_filename(7, "web1")
        assert filename == "7-web1.conf"

    def test_find(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test looking up the slot of a jail by its name."""
        allocator = libjailconf.SlotAllocator.SlotAllocator(
            ["1-a.conf", "2-web-1.conf"],
            logger=logger
        )
        assert allocator.find("web-1") == (2, "2-web-1.conf")
        assert allocator.find("web") is None
        assert allocator.names == ["a", "web-1"]
        assert allocator.slots == [1, 2]

    def test_find_duplicate_name(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that a jail configured twice raises DuplicateJailName."""
        allocator = libjailconf.SlotAllocator.SlotAllocator(
            ["1-a.conf", "3-a.conf"],
            logger=logger
        )
        with pytest.raises(libjailconf.errors.DuplicateJailName):
            allocator.find("a")

    def test_require_slot_free(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that a slot used by another jail raises SlotAlreadyInUse."""
        allocator = libjailconf.SlotAllocator.SlotAllocator(
            ["1-a.conf"],
            logger=logger
        )
        allocator.require_slot_free(2, "b")
        allocator.require_slot_free(1, "a")
        with pytest.raises(libjailconf.errors.SlotAlreadyInUse):
            allocator.require_slot_free(1, "b")
