"""
Streamlit frontend for Course Catalog Search.

Calls GET {CATALOG_API_URL}/api/search and /api/search/suggest and renders
the matching courses as a table.
"""

from datetime import datetime, time, timezone

import requests
import streamlit as st

from catalog.config import API_URL, DEFAULT_PAGE_SIZE

SEARCH_URL = f"{API_URL}/api/search"
SUGGEST_URL = f"{API_URL}/api/search/suggest"

SORT_OPTIONS = {
    "Next session (soonest first)": None,
    "Price (low to high)": "priceAsc",
    "Price (high to low)": "priceDesc",
}

st.set_page_config(page_title="Course Catalog Search", layout="centered")
st.title("Course Catalog Search")

st.markdown(
    """
### Quick start
1. Start the backend API in another terminal: `python app/app.py`
2. Type a query and/or pick filters
3. Click **Search**

### Notes
- When any filter is set, the filters decide the results and the text query is ignored.
- If the API is not running, you'll see a connection error.
"""
)


def _get(url: str, params: dict) -> object:
    try:
        resp = requests.get(url, params=params, timeout=10)
        resp.raise_for_status()
        return resp.json()
    except requests.exceptions.ConnectionError:
        st.error("Cannot reach the API. Start it with: python app/app.py")
        st.stop()
    except requests.exceptions.HTTPError as exc:
        st.error(f"API error: {exc}")
        st.stop()


query = st.text_input("Search query", placeholder="e.g. Python, Algebra, Robotics")
if len(query.strip()) >= 2:
    hints = _get(SUGGEST_URL, {"q": query.strip(), "size": 5})
    if hints:
        st.caption("Suggestions: " + " · ".join(hints))

with st.sidebar:
    st.header("Filters")
    category = st.text_input("Category", placeholder="e.g. Math")
    course_type = st.selectbox("Type", ["Any", "COURSE", "ONE_TIME", "CLUB"])
    use_age = st.checkbox("Filter by age")
    ages = st.slider("Age range", 3, 99, (8, 14), disabled=not use_age)
    use_price = st.checkbox("Filter by price")
    prices = st.slider("Price range", 0, 2000, (0, 500), step=10, disabled=not use_price)
    use_date = st.checkbox("Starting from date")
    from_day = st.date_input("Next session on or after", disabled=not use_date)
    sort_label = st.selectbox("Sort", list(SORT_OPTIONS))
    size = st.number_input("Results per page", 1, 50, DEFAULT_PAGE_SIZE)
    page = st.number_input("Page", 1, 1000, 1)

submitted = st.button("Search")


if submitted:
    params: dict = {"page": int(page) - 1, "size": int(size)}
    if query.strip():
        params["q"] = query.strip()
    if category.strip():
        params["category"] = category.strip()
    if course_type != "Any":
        params["type"] = course_type
    if use_age:
        params["minAge"], params["maxAge"] = ages
    if use_price:
        params["minPrice"], params["maxPrice"] = prices
    if use_date:
        start = datetime.combine(from_day, time.min, tzinfo=timezone.utc)
        params["startDate"] = start.strftime("%Y-%m-%dT%H:%M:%SZ")
    if SORT_OPTIONS[sort_label]:
        params["sort"] = SORT_OPTIONS[sort_label]

    with st.spinner("Searching…"):
        data = _get(SEARCH_URL, params)

    courses = data.get("courses", [])
    st.subheader(f"{data.get('total', 0)} matching courses")
    if courses:
        rows = [
            {
                "Title": c.get("title", ""),
                "Category": c.get("category", ""),
                "Price": c.get("price"),
                "Next session": c.get("nextSessionDate", ""),
            }
            for c in courses
        ]
        st.dataframe(rows, use_container_width=True, hide_index=True)
    else:
        st.info("No courses returned for this query.")
