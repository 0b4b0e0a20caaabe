"""Portfolio bounded context, HTTP interface."""
