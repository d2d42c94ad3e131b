"""Tests for vpnctl.fleet.addressing -- endpoint port arithmetic."""

from __future__ import annotations

import pytest

from vpnctl.config.settings import ProfileSettings
from vpnctl.fleet.addressing import (
    AddressingRangeError,
    endpoint,
    endpoint_port,
    profile_endpoints,
)


def _profile(number: int, processes: int = 1, ip: str = "127.0.0.1") -> ProfileSettings:
    return ProfileSettings(
        id=f"p{number}",
        profile_number=number,
        management_ip=ip,
        process_count=processes,
        enable_acl=False,
        acl_permissions=(),
        display_name=f"p{number}",
    )


class TestEndpointPort:
    @pytest.mark.parametrize(
        ("profile_number", "process_index", "port"),
        [
            (1, 0, 11940),
            (1, 63, 12003),
            (2, 0, 12004),
            (3, 0, 12068),
            (3, 1, 12069),
            (64, 63, 16035),
        ],
    )
    def test_known_ports(self, profile_number, process_index, port):
        assert endpoint_port(profile_number, process_index) == port

    def test_custom_base_port(self):
        assert endpoint_port(1, 0, base_port=20000) == 20000
        assert endpoint_port(2, 5, base_port=20000) == 20069

    def test_all_valid_pairs_are_distinct(self):
        ports = {endpoint_port(n, i) for n in range(1, 65) for i in range(64)}
        assert len(ports) == 64 * 64

    @pytest.mark.parametrize("profile_number", [0, 65, -1])
    def test_profile_number_out_of_range(self, profile_number):
        with pytest.raises(AddressingRangeError, match=r"1 <= profileNumber <= 64"):
            endpoint_port(profile_number, 0)

    @pytest.mark.parametrize("process_index", [64, -1])
    def test_process_index_out_of_range(self, process_index):
        with pytest.raises(AddressingRangeError, match=r"0 <= processNumber < 64"):
            endpoint_port(1, process_index)

    def test_range_error_is_value_error(self):
        with pytest.raises(ValueError):
            endpoint_port(0, 0)


class TestEndpoints:
    def test_endpoint_uses_management_ip(self):
        ep = endpoint(_profile(3, ip="10.1.0.5"), 1)
        assert ep.profile_id == "p3"
        assert ep.port == 12069
        assert ep.address == "tcp://10.1.0.5:12069"
        assert str(ep) == ep.address

    def test_profile_endpoints_one_per_process(self):
        ports = [ep.port for ep in profile_endpoints(_profile(2, processes=3))]
        assert ports == [12004, 12005, 12006]

    def test_profile_without_processes_has_no_endpoints(self):
        assert list(profile_endpoints(_profile(1, processes=0))) == []
