"""sensorwatch: device health and alert evaluation for environmental sensors."""
