"""
PDF report viewer for the records desk webapp.
Displays a downloaded report with fallback options; the bytes live only for
the render that displays them.
"""

import streamlit as st
import base64
import logging
from datetime import datetime

from streamlit_pdf_viewer import pdf_viewer

logger = logging.getLogger(__name__)


class ReportViewer:
    """Handles PDF report display."""

    @staticmethod
    def render(pdf_bytes: bytes, filename: str) -> None:
        """
        Display a PDF report and offer it for download.

        Args:
            pdf_bytes: Report content
            filename: Name used for the download
        """
        if not pdf_bytes:
            st.info("The report is empty.")
            return

        if not ReportViewer._try_streamlit_pdf_viewer(pdf_bytes):
            ReportViewer._iframe_embed(pdf_bytes)

        st.download_button(
            label="⬇️ Download PDF",
            data=pdf_bytes,
            file_name=filename,
            mime="application/pdf",
            key=f"download_{filename}"
        )

    @staticmethod
    def _try_streamlit_pdf_viewer(pdf_bytes: bytes) -> bool:
        """Try to use the streamlit-pdf-viewer component."""
        try:
            pdf_viewer(pdf_bytes, width=700, height=800)
            return True
        except Exception as e:
            logger.error(f"Error with streamlit-pdf-viewer: {e}")
            return False

    @staticmethod
    def _iframe_embed(pdf_bytes: bytes) -> None:
        """Embed the PDF as a base64 data URL."""
        pdf_base64 = base64.b64encode(pdf_bytes).decode('utf-8')
        pdf_data_url = f"data:application/pdf;base64,{pdf_base64}"

        iframe_html = f"""
        <iframe
            src="{pdf_data_url}"
            width="100%"
            height="800px"
            style="border: 1px solid #ccc; border-radius: 5px;">
        </iframe>
        """
        st.markdown(iframe_html, unsafe_allow_html=True)
        st.caption("Browser-embedded preview. Use the download button if it does not display.")


def report_filename(report_type: str) -> str:
    """Download name for a report generated now."""
    return f"{report_type}-report-{datetime.now().strftime('%Y%m%d-%H%M%S')}.pdf"
