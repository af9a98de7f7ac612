# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import os
import pytest

import multiqueue.xps as xps
from multiqueue.outcome import SET, FAILED
from multiqueue.xps import format_xps_mask, queue_index, set_xps_affinity, stripe_mask, usable_cpu_count
from fake_host import FakeHost


class TestMaskConstruction:
    @pytest.mark.parametrize("num_queues, num_cpus", [
        (1, 1),
        (2, 8),
        (4, 4),
        (3, 10),
        (8, 63),
        (16, 4),
    ])
    def test_stripes_partition_the_cpus(self, num_queues, num_cpus):
        masks = [stripe_mask(q, num_queues, num_cpus) for q in range(num_queues)]

        union = 0
        for q, mask in enumerate(masks):
            assert 0 == union & mask
            union |= mask
            for cpu in range(num_cpus):
                assert bool(mask & (1 << cpu)) == (cpu % num_queues == q)
        assert (1 << num_cpus) - 1 == union

    def test_stripe_mask_examples(self):
        assert 0b01010101 == stripe_mask(0, 2, 8)
        assert 0b10101010 == stripe_mask(1, 2, 8)
        assert 0 == stripe_mask(5, 8, 4)

    def test_stripe_mask_with_no_cpus_or_queues_is_empty(self):
        assert 0 == stripe_mask(0, 4, 0)
        assert 0 == stripe_mask(0, 0, 8)

    @pytest.mark.parametrize("mask, num_cpus, expected", [
        (0x5, 4, "00000005"),
        (0x0, 0, "00000000"),
        (0xffffffff, 32, "ffffffff"),
        (1 << 32, 33, "00000001,00000000"),
        ((1 << 65) | 1, 70, "00000002,00000000,00000001"),
        (0x7fffffffffffffff, 63, "7fffffff,ffffffff"),
    ])
    def test_format_xps_mask(self, mask, num_cpus, expected):
        assert expected == format_xps_mask(mask, num_cpus)

    @pytest.mark.parametrize("path, expected", [
        ("/sys/class/net/eth0/queues/tx-0/xps_cpus", 0),
        ("/sys/class/net/ens4/queues/tx-13/xps_cpus", 13),
    ])
    def test_queue_index(self, path, expected):
        assert expected == queue_index(path)

    def test_queue_index_rejects_other_paths(self):
        with pytest.raises(ValueError):
            _ = queue_index("/sys/class/net/eth0/queues/rx-0/rps_cpus")

    def test_usable_cpu_count_is_capped(self, monkeypatch):
        monkeypatch.setattr(xps.os, "sched_getaffinity", lambda pid: set(range(96)), raising=False)
        assert 63 == usable_cpu_count(63)
        assert 96 == usable_cpu_count(128)


class TestXpsAffinity:
    def test_queues_get_striped_masks(self, tmp_path):
        host = FakeHost(tmp_path)
        paths = host.add_tx_queues("eth0", 4)

        outcomes = set_xps_affinity(host.config, num_cpus=8)

        assert ["00000011", "00000022", "00000044", "00000088"] == [host.read(p) for p in paths]
        assert [SET] * 4 == [o.status for o in outcomes]
        assert f"Queue 1 XPS=00000022 for {paths[1]}" == outcomes[1].message

    def test_outcomes_are_sorted_numerically_by_queue(self, tmp_path):
        host = FakeHost(tmp_path)
        host.add_tx_queues("eth0", 12)

        outcomes = set_xps_affinity(host.config, num_cpus=4)

        assert [f"Queue {q} " for q in range(12)] == [o.message[:len(f"Queue {q} ")] for q, o in enumerate(outcomes)]

    def test_cpu_count_is_capped_at_63(self, tmp_path):
        host = FakeHost(tmp_path)
        paths = host.add_tx_queues("eth0", 1)

        set_xps_affinity(host.config, num_cpus=70)

        assert "7fffffff,ffffffff" == host.read(paths[0])

    def test_only_matching_interfaces_are_touched(self, tmp_path):
        host = FakeHost(tmp_path)
        eth = host.add_tx_queues("eth0", 2)
        lo = host.add_tx_queues("lo", 1)

        set_xps_affinity(host.config, num_cpus=2)

        assert ["00000001", "00000002"] == [host.read(p) for p in eth]
        assert "00000000" == host.read(lo[0])

    def test_no_queues_means_no_writes(self, tmp_path):
        host = FakeHost(tmp_path)
        os.makedirs(host.config.net_dir())

        assert [] == set_xps_affinity(host.config, num_cpus=8)

    def test_zero_cpus_still_writes_empty_masks(self, tmp_path):
        host = FakeHost(tmp_path)
        paths = host.add_tx_queues("eth0", 2)
        for path in paths:
            with open(path, "w") as f:
                f.write("ffffffff\n")

        set_xps_affinity(host.config, num_cpus=0)

        assert ["00000000", "00000000"] == [host.read(p) for p in paths]

    def test_unwritable_queue_is_reported_and_next_queue_is_set(self, tmp_path):
        host = FakeHost(tmp_path)
        paths = host.add_tx_queues("eth0", 2)
        os.remove(paths[0])
        os.makedirs(paths[0])

        outcomes = set_xps_affinity(host.config, num_cpus=4)

        assert [FAILED, SET] == [o.status for o in outcomes]
        assert outcomes[0].message.startswith("Queue 0 XPS=00000005 for ")
        assert "0000000a" == host.read(paths[1])

    def test_queue_without_numeric_index_does_not_stop_the_pass(self, tmp_path):
        host = FakeHost(tmp_path)
        paths = host.add_tx_queues("eth0", 1)
        odd = os.path.join(host.config.net_dir(), "eth0", "queues", "tx-bogus", "xps_cpus")
        os.makedirs(os.path.dirname(odd))
        with open(odd, "w") as f:
            f.write("00000000\n")

        outcomes = set_xps_affinity(host.config, num_cpus=4)

        assert [SET, FAILED] == [o.status for o in outcomes]
        assert "00000000" == host.read(odd)
        assert "00000005" == host.read(paths[0])
