"""Stock price tracker: scheduled Finnhub sampling with moving averages over a REST API."""
