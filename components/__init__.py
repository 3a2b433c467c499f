"""
Subscription Planning Dashboard - Components
Plotly figures and Streamlit widgets shared by the views
"""
