"""tlekit quickstart: parse a TLE, inspect it, edit it and write it back."""

from tlekit import TLE, OutputFormat

# ISS (ZARYA) TLE
name = "ISS (ZARYA)"
line1 = "1 25544U 98067A   24045.54896019  .00016717  00000-0  30093-3 0  9993"
line2 = "2 25544  51.6412 207.4925 0004948 290.5508 178.9792 15.49583488439596"

# Parse it
iss = TLE.from_lines(line1, line2, name=name)

print(f"Satellite: {iss.name}")
print(f"NORAD ID:  {iss.satellite_number}")
print(f"Epoch:     {iss.epoch}")
print(f"Incl:      {iss.inclination_deg:.4f}°")
print(f"Ecc:       {iss.eccentricity:.7f}")
print(f"Period:    {1440 / iss.mean_motion_rev_per_day:.1f} min")
print(f"a:         {iss.semi_major_axis:.1f} km")

state = iss.state_vector()
print(f"r:         {state.position_km} km")
print(f"v:         {state.velocity_km_s} km/s")

# Edit and re-serialize with fresh checksums
iss.mean_anomaly_deg = 0.0
iss.revolution_number += 1
print(iss.set_output_format(OutputFormat.TWO_LINE).serialize())
