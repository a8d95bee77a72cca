import pytest

from router.fake import FakeRouter
from router.models import Client
from whoshome.presence import Person, find_client, who_is_home

PHONE = Client("alice-phone", "aa:bb:cc:dd:ee:ff")
LAPTOP = Client("bob-laptop", "11:22:33:44:55:66")
TV = Client("<unnamed>", "de:ad:be:ef:00:01")


def test_person_home_when_any_device_online():
    persons = [Person("Alice", ("alice-phone", "alice-watch")), Person("Bob", ("bob-laptop",))]
    assert who_is_home(persons, [PHONE]) == [persons[0]]


def test_devices_can_be_listed_by_mac():
    persons = [Person("Living room", ("DE:AD:BE:EF:00:01",))]
    assert who_is_home(persons, [TV]) == persons


def test_nobody_home():
    persons = [Person("Alice", ("alice-phone",))]
    assert who_is_home(persons, []) == []


def test_configuration_order_is_kept():
    persons = [Person("Bob", ("bob-laptop",)), Person("Alice", ("alice-phone",))]
    assert [p.name for p in who_is_home(persons, [PHONE, LAPTOP])] == ["Bob", "Alice"]


def test_find_client_by_name_and_mac():
    router = FakeRouter(known=[PHONE, LAPTOP])
    assert find_client(router, "bob-laptop") == LAPTOP
    assert find_client(router, "AA:BB:CC:DD:EE:FF") == PHONE


def test_find_client_unknown_name():
    router = FakeRouter(known=[PHONE])
    with pytest.raises(LookupError, match="Could not find client named ghost"):
        find_client(router, "ghost")
