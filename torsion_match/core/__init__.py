"""Core torsion-angle matching: angles, metric, selections and matcher."""
