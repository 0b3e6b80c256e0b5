"""
Commands - click command implementations for the ethdemo CLI.

Each module corresponds to a top-level CLI command or group:
- demo:    the full walkthrough (run)
- wallet:  create / show keystore wallet files
- funds:   balance and transfer
- greeter: deploy / greet / update / events on the Greeter contract
"""
