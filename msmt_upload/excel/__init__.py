"""Upload workbook reading and template writing."""
