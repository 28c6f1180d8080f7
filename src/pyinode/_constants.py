"""Internal constants shared across the library."""

# Seconds without a report after which a device stops answering MODBUS requests.
DEFAULT_DEVICE_TIMEOUT = 20.0

# Upper bound for a connection's reassembly buffer.
DEFAULT_MAX_BUFFER_SIZE = 4096

# Raw register value meaning "not reported".
UNDEFINED = 0x00FF

REGISTER_SIZE = 2

LOCAL_NAME_SIZE = 16

# Fields whose register position is the same for every model.
MODEL_STABLE_FIELDS: frozenset[str] = frozenset({"rssi", "local_name", "tx_power_level"})
