from src.utils.parsing import dig, parse_json_dict, to_float, to_positive_float


def test_to_float():
    assert to_float("1.5") == 1.5
    assert to_float(2) == 2.0
    assert to_float(None) is None
    assert to_float(True) is None
    assert to_float("abc") is None
    assert to_float("nan") is None
    assert to_float(float("inf")) is None


def test_to_positive_float():
    assert to_positive_float("0.01") == 0.01
    assert to_positive_float("0") is None
    assert to_positive_float(-3) is None


def test_dig():
    payload = {"result": {"order": {"order_id": "x"}}}
    assert dig(payload, "result", "order", "order_id") == "x"
    assert dig(payload, "result", "trades") is None
    assert dig({"result": []}, "result", "order") is None


def test_parse_json_dict():
    assert parse_json_dict('{"a": 1}') == {"a": 1}
    assert parse_json_dict("[1, 2]") == {}
    assert parse_json_dict("{broken") == {}
    assert parse_json_dict({"b": 2}) == {"b": 2}
    assert parse_json_dict(None) == {}
