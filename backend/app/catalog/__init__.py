"""Conference catalog: conferences, halls, time slots and speakers."""
