# Service layer for the rover dashboard
# - device_gateway:     mock / HTTP access to the vehicle's Flask API
# - command_dispatcher: keyboard, pad, gimbal and mode input -> gateway calls
# - status_poller:      fixed-period telemetry loop feeding RobotState
