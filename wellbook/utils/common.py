from datetime import datetime, timedelta

def local_now():
    """Current wall-clock time, naive, as used for appointment times"""
    return datetime.now()

def floor_to_grid(moment, interval_minutes):
    """Round a datetime down to the slot grid"""
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    minutes = int((moment - midnight) / timedelta(minutes=1))
    return midnight + timedelta(minutes=(minutes // interval_minutes) * interval_minutes)

def grid_blocks(start_time, end_time, interval_minutes):
    """Start of every grid block touched by [start_time, end_time)"""
    blocks = []
    current = floor_to_grid(start_time, interval_minutes)
    step = timedelta(minutes=interval_minutes)
    while current < end_time:
        blocks.append(current)
        current += step
    return blocks

def format_appointment_time(moment):
    # Windows-compatible formatting (no %-type specifiers)
    day_name = moment.strftime('%A')
    month_name = moment.strftime('%B')
    hour = moment.strftime('%I').lstrip('0')
    minute = moment.strftime('%M')
    am_pm = moment.strftime('%p')
    return f"{day_name}, {month_name} {moment.day}, {moment.year} at {hour}:{minute} {am_pm}"
