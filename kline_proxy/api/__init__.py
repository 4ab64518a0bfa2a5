"""HTTP surface of the kline proxy."""
