"""Command encoding, transport handles and the command sender."""
