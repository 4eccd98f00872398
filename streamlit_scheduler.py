"""Meeting Time Recommender - Streamlit front page."""

import logging
from datetime import date, datetime, time, timedelta

import pytz
import streamlit as st

from services.calendar_service import CalendarService
from services.directory import Directory
from services.directory_mock import build_sample_directory
from services.exceptions import ValidationError
from services.recommendation_service import RecommendationService
from services.response_formatter import ResponseFormatter
from settings import load_settings

# ============================================================================
# CONFIGURATION
# ============================================================================

settings = load_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="Meeting Time Recommender",
    page_icon="🗓️",
    layout="wide"
)

# ============================================================================
# SERVICE INITIALIZATION
# ============================================================================

@st.cache_resource
def get_services(_cache_version="v1"):
    """Initialize and cache the directory and recommendation service."""
    if settings.directory_file:
        try:
            directory = Directory.from_json_file(settings.directory_file)
        except (OSError, ValidationError) as e:
            st.error(f"Failed to load directory {settings.directory_file}: {e}")
            return None, None
    else:
        directory = build_sample_directory()

    calendar_service = CalendarService(settings)
    service = RecommendationService(directory, calendar_service, settings)
    return directory, service


directory, recommendation_service = get_services()
if recommendation_service is None:
    st.stop()

if "last_response" not in st.session_state:
    st.session_state.last_response = None

# ============================================================================
# SIDEBAR
# ============================================================================

persons = directory.list_persons()
labels = {p.id: f"{p.display_name} ({p.timezone})" for p in persons}

with st.sidebar:
    st.markdown("**Participants**")
    selected_ids = st.multiselect(
        "People to invite",
        options=[p.id for p in persons],
        format_func=lambda pid: labels[pid],
        default=[p.id for p in persons[:2]]
    )

    st.markdown("---")
    st.markdown("**Search Range**")
    display_timezone = st.selectbox(
        "Time zone",
        options=sorted({p.timezone for p in persons} | {"UTC"}),
        index=0
    )
    start_day = st.date_input("From", value=date.today() + timedelta(days=1))
    days = st.number_input("Days to search", min_value=1, max_value=14, value=1)
    start_hour, end_hour = st.slider("Hours of day", min_value=0, max_value=24, value=(0, 24))
    duration = st.selectbox("Meeting duration (minutes)", options=[15, 30, 45, 60, 90, 120], index=1)

    if settings.mock_mode:
        st.info("Mock mode: calendars are synthetic.")

# ============================================================================
# MAIN
# ============================================================================

st.title("🗓️ Meeting Time Recommender")

if st.button("🔍 Find Times", key="find_times"):
    tz = pytz.timezone(display_timezone)
    range_start = tz.localize(datetime.combine(start_day, time(start_hour % 24, 0)))
    if end_hour == 24:
        range_end = tz.localize(datetime.combine(start_day + timedelta(days=days), time(0, 0)))
    else:
        range_end = tz.localize(datetime.combine(start_day + timedelta(days=days - 1), time(end_hour, 0)))

    with st.spinner("Checking calendars..."):
        try:
            st.session_state.last_response = recommendation_service.recommend_for_ids(
                selected_ids,
                range_start,
                range_end,
                duration_minutes=int(duration),
                timezone="UTC"
            )
        except ValidationError as e:
            st.session_state.last_response = None
            st.error(ResponseFormatter.format_error("Invalid Request", str(e)))

response = st.session_state.last_response
if response is not None:
    st.markdown(ResponseFormatter.format_recommendations(response, display_timezone))
    with st.expander("Raw response", expanded=False):
        st.json(response.to_dict())
else:
    st.markdown("*Pick participants and a range, then press **Find Times**.*")
