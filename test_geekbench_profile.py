"""
Tests for Geekbench profile parsing and fetching.
"""

from unittest.mock import MagicMock

import pytest
import requests

from devicebench.geekbench_profile import (
    GeekbenchProfileError,
    extract_result_id,
    fetch_benchmark_by_id,
    fetch_geekbench_profile,
    parse_geekbench_results,
    resolve_profile,
    validate_geekbench_url,
)

PROXY = 'http://proxy.example.test/api/proxy/geekbench'

PROFILE_HTML = """
<table>
  <tr><th>System</th><th>CPU</th><th>Uploaded</th><th>Single</th><th>Multi</th></tr>
  <tr>
    <td><a href="/v6/cpu/1234567">MacBook Pro (14-inch, 2023)</a></td>
    <td>Apple M3 Pro</td>
    <td>Oct 18, 2026</td>
    <td class="score">3,102</td>
    <td class="score">15,480</td>
  </tr>
  <tr>
    <td><a href="/v6/cpu/7654321">Samsung Galaxy S24</a></td>
    <td>Snapdragon 8 Gen 3</td>
    <td>Sep 2, 2026</td>
    <td>2,210</td>
    <td>6,900</td>
  </tr>
  <tr><td><a href="/v6/cpu/99">Broken row</a></td><td>only two cells</td></tr>
</table>
"""


def response(text='', json_data=None, status_code=200):
    resp = MagicMock(status_code=status_code, text=text)
    resp.json.return_value = json_data
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


def test_validate_geekbench_url():
    assert validate_geekbench_url('https://browser.geekbench.com/v6/cpu/1234567')
    assert validate_geekbench_url('https://browser.geekbench.com/v5/compute/42')
    assert validate_geekbench_url('https://browser.geekbench.com/v6/ml/7')
    assert not validate_geekbench_url('http://browser.geekbench.com/v6/cpu/1')
    assert not validate_geekbench_url('https://browser.geekbench.com/user/alice')
    assert not validate_geekbench_url('')


def test_extract_result_id():
    assert extract_result_id('https://browser.geekbench.com/v6/cpu/1234567') == '1234567'
    assert extract_result_id('https://example.test/page') is None


def test_resolve_profile():
    assert resolve_profile('alice') == ('alice', 'https://browser.geekbench.com/user/alice')
    assert resolve_profile(' https://browser.geekbench.com/user/bob?page=2 ') == (
        'bob', 'https://browser.geekbench.com/user/bob')


def test_parse_geekbench_results():
    devices = parse_geekbench_results(PROFILE_HTML)

    assert len(devices) == 2
    first = devices[0]
    assert first.name == 'MacBook Pro (14-inch, 2023)'
    assert first.processor == 'Apple M3 Pro'
    assert first.benchmark_date == 'Oct 18, 2026'
    assert first.single_core_score == 3102
    assert first.multi_core_score == 15480
    assert first.result_url == 'https://browser.geekbench.com/v6/cpu/1234567'

    assert parse_geekbench_results('') == []


def test_fetch_geekbench_profile():
    session = MagicMock()
    session.get.return_value = response(text=PROFILE_HTML)

    profile = fetch_geekbench_profile('https://browser.geekbench.com/user/alice', session=session, proxy_base=PROXY)

    session.get.assert_called_once_with(f'{PROXY}/user/alice', timeout=30)
    assert profile.username == 'alice'
    assert len(profile.devices) == 2
    assert profile.latest_benchmark == {
        'deviceName': 'MacBook Pro (14-inch, 2023)',
        'singleCore': 3102,
        'multiCore': 15480,
        'date': 'Oct 18, 2026',
        'resultUrl': 'https://browser.geekbench.com/v6/cpu/1234567',
    }


def test_fetch_geekbench_profile_error():
    session = MagicMock()
    session.get.return_value = response(status_code=404)

    with pytest.raises(GeekbenchProfileError):
        fetch_geekbench_profile('alice', session=session, proxy_base=PROXY)


def test_fetch_benchmark_by_id_direct():
    session = MagicMock()
    session.get.return_value = response(json_data={'score': 3102})

    assert fetch_benchmark_by_id('1234567', session=session, proxy_base=PROXY) == {'score': 3102}
    session.get.assert_called_once_with('https://browser.geekbench.com/v6/cpu/1234567.json', timeout=30)


def test_fetch_benchmark_by_id_uses_proxy():
    session = MagicMock()
    session.get.side_effect = [
        requests.ConnectionError("blocked"),
        response(json_data={'score': 2210}),
    ]

    assert fetch_benchmark_by_id('7654321', session=session, proxy_base=PROXY) == {'score': 2210}
    assert session.get.call_args[0][0] == f'{PROXY}/result/7654321'


def test_fetch_benchmark_by_id_fails():
    session = MagicMock()
    session.get.return_value = response(status_code=500)

    with pytest.raises(GeekbenchProfileError):
        fetch_benchmark_by_id('1', session=session, proxy_base=PROXY)
