"""Convert local documents to PDF through a SharePoint library with Microsoft Graph."""
