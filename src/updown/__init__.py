"""UpDown Predict backend: rounds, scoring and leaderboards."""
